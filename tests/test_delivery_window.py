from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest
from hypothesis import given
from hypothesis import strategies as st

from config import BakeryConfig, CutoffRule
from scheduling import (
    DeliveryWindowCalculator,
    is_past_cutoff,
    is_valid_delivery_date,
    next_delivery_date,
    upcoming_delivery_dates,
)

CHICAGO = ZoneInfo("America/Chicago")
RULE = CutoffRule(cutoff_weekday=6, cutoff_hour=17, timezone="America/Chicago")


def chicago(*args) -> datetime:
    return datetime(*args, tzinfo=CHICAGO)


# ---------------------------
# Scenarios
# ---------------------------
def test_thursday_morning_gets_upcoming_monday():
    assert next_delivery_date(chicago(2025, 1, 2, 10, 0), RULE) == date(2025, 1, 6)


def test_saturday_exactly_at_cutoff_skips_a_week():
    assert next_delivery_date(chicago(2025, 1, 4, 17, 0), RULE) == date(2025, 1, 13)


def test_saturday_one_minute_before_cutoff_gets_upcoming_monday():
    assert next_delivery_date(chicago(2025, 1, 4, 16, 59), RULE) == date(2025, 1, 6)


def test_saturday_late_evening_is_past_cutoff():
    assert next_delivery_date(chicago(2025, 1, 4, 23, 59), RULE) == date(2025, 1, 13)


def test_sunday_after_cutoff_day_gets_next_day():
    # Only the cutoff weekday itself rolls over
    assert next_delivery_date(chicago(2025, 1, 5, 9, 0), RULE) == date(2025, 1, 6)


def test_monday_gets_following_monday():
    assert next_delivery_date(chicago(2025, 1, 6, 0, 0), RULE) == date(2025, 1, 13)
    assert next_delivery_date(chicago(2025, 1, 6, 23, 0), RULE) == date(2025, 1, 13)


def test_utc_instant_is_read_in_bakery_timezone():
    # 2025-01-05 02:00 UTC is Saturday 20:00 in Chicago
    assert next_delivery_date(datetime(2025, 1, 5, 2, 0, tzinfo=timezone.utc), RULE) == date(2025, 1, 13)
    # 2025-01-04 22:59 UTC is Saturday 16:59 in Chicago
    assert next_delivery_date(datetime(2025, 1, 4, 22, 59, tzinfo=timezone.utc), RULE) == date(2025, 1, 6)


def test_daylight_saving_offset_is_honored():
    # July: CDT, UTC-5, so 22:00 UTC is 17:00 local
    assert next_delivery_date(datetime(2025, 7, 5, 22, 0, tzinfo=timezone.utc), RULE) == date(2025, 7, 14)
    assert next_delivery_date(datetime(2025, 7, 5, 21, 59, tzinfo=timezone.utc), RULE) == date(2025, 7, 7)


def test_naive_datetime_is_treated_as_utc():
    assert next_delivery_date(datetime(2025, 1, 4, 23, 0), RULE) == date(2025, 1, 13)


def test_other_cutoff_weekday():
    wednesday_noon = CutoffRule(cutoff_weekday=3, cutoff_hour=12, timezone="Europe/Madrid")
    madrid = ZoneInfo("Europe/Madrid")
    assert next_delivery_date(datetime(2025, 1, 1, 11, 0, tzinfo=madrid), wednesday_noon) == date(2025, 1, 6)
    assert next_delivery_date(datetime(2025, 1, 1, 12, 0, tzinfo=madrid), wednesday_noon) == date(2025, 1, 13)


def test_is_past_cutoff_ignores_minutes():
    assert is_past_cutoff(chicago(2025, 1, 4, 17, 0), RULE)
    assert is_past_cutoff(chicago(2025, 1, 4, 17, 59), RULE)
    assert not is_past_cutoff(chicago(2025, 1, 4, 16, 59), RULE)
    assert not is_past_cutoff(chicago(2025, 1, 3, 18, 0), RULE)


def test_upcoming_delivery_dates_are_consecutive_mondays():
    dates = upcoming_delivery_dates(chicago(2025, 1, 4, 17, 0), RULE, weeks=3)
    assert dates == [date(2025, 1, 13), date(2025, 1, 20), date(2025, 1, 27)]


def test_is_valid_delivery_date():
    now = chicago(2025, 1, 2, 10, 0)
    assert is_valid_delivery_date(date(2025, 1, 6), now, RULE)
    assert is_valid_delivery_date(date(2025, 1, 20), now, RULE)
    assert not is_valid_delivery_date(date(2024, 12, 30), now, RULE)
    assert not is_valid_delivery_date(date(2025, 1, 7), now, RULE)


def test_calculator_reads_clock_on_every_call():
    readings = iter([chicago(2025, 1, 4, 16, 0), chicago(2025, 1, 4, 17, 0)])
    calc = DeliveryWindowCalculator(BakeryConfig(cutoff=RULE), clock=lambda: next(readings))
    assert calc.next_delivery_date() == date(2025, 1, 6)
    assert calc.next_delivery_date() == date(2025, 1, 13)


def test_unknown_timezone_fails_at_load():
    with pytest.raises(ZoneInfoNotFoundError):
        CutoffRule(timezone="Mars/Olympus_Mons")


@pytest.mark.parametrize("weekday,hour", [(-1, 17), (7, 17), (6, -1), (6, 24)])
def test_cutoff_rule_bounds(weekday, hour):
    with pytest.raises(ValueError):
        CutoffRule(cutoff_weekday=weekday, cutoff_hour=hour)


# ---------------------------
# Properties
# ---------------------------
instants = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2099, 12, 31),
    timezones=st.just(timezone.utc),
)


@given(instants)
def test_result_is_always_a_monday(now):
    assert next_delivery_date(now, RULE).weekday() == 0


@given(instants)
def test_days_ahead_depends_only_on_cutoff(now):
    local = now.astimezone(CHICAGO)
    days = (next_delivery_date(now, RULE) - local.date()).days
    if local.isoweekday() % 7 == 6 and local.hour >= 17:
        assert days == 9
    else:
        assert 1 <= days <= 7


@given(instants)
def test_result_is_never_before_tomorrow(now):
    local_today = now.astimezone(CHICAGO).date()
    assert next_delivery_date(now, RULE) >= local_today + timedelta(days=1)
