from dataclasses import dataclass
from datetime import datetime, date, timedelta, timezone
from typing import Callable, List, Optional

from config import BakeryConfig, CutoffRule


# ---------------------------
# Delivery window
# ---------------------------
def local_time(now: datetime, rule: CutoffRule) -> datetime:
    # Naive datetimes are read as UTC
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(rule.tz)


def sunday_based_weekday(d: date) -> int:
    return d.isoweekday() % 7


def upcoming_monday(d: date) -> date:
    days = (7 - d.weekday()) % 7 or 7
    return d + timedelta(days=days)


def is_past_cutoff(now: datetime, rule: CutoffRule) -> bool:
    local = local_time(now, rule)
    # Minutes are never compared: hour == cutoff_hour counts as past cutoff
    return sunday_based_weekday(local.date()) == rule.cutoff_weekday and local.hour >= rule.cutoff_hour


def next_delivery_date(now: datetime, rule: CutoffRule) -> date:
    """
    Next Monday an order placed at `now` can be delivered on.

    Past the cutoff the upcoming Monday is skipped (too late to prep for it)
    and the order lands on the Monday after.
    """
    today = local_time(now, rule).date()
    monday = upcoming_monday(today)
    if is_past_cutoff(now, rule):
        monday += timedelta(days=7)
    return monday


def upcoming_delivery_dates(now: datetime, rule: CutoffRule, weeks: int = 4) -> List[date]:
    first = next_delivery_date(now, rule)
    return [first + timedelta(weeks=i) for i in range(weeks)]


def is_valid_delivery_date(d: date, now: datetime, rule: CutoffRule) -> bool:
    return d.weekday() == 0 and d >= next_delivery_date(now, rule)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryWindowCalculator:
    def __init__(self, config: BakeryConfig, clock: Optional[Callable[[], datetime]] = None):
        self.rule = config.cutoff
        self.clock = clock or utc_now

    def now(self) -> datetime:
        return self.clock()

    def next_delivery_date(self, now: Optional[datetime] = None) -> date:
        return next_delivery_date(now or self.clock(), self.rule)

    def upcoming(self, weeks: int = 4, now: Optional[datetime] = None) -> List[date]:
        return upcoming_delivery_dates(now or self.clock(), self.rule, weeks)

    def is_valid(self, d: date, now: Optional[datetime] = None) -> bool:
        return is_valid_delivery_date(d, now or self.clock(), self.rule)


# ---------------------------
# Capacity
# ---------------------------
class InvalidQuantity(ValueError):
    pass


@dataclass(frozen=True)
class CapacityDecision:
    delivery_date: date
    accepted: bool
    remaining: int
    committed: int

    def to_dict(self) -> dict:
        return {
            "delivery_date": self.delivery_date.isoformat(),
            "accepted": self.accepted,
            "remaining": self.remaining,
            "committed": self.committed,
        }


def evaluate_capacity(delivery_date: date, requested: int, committed: int, cap: int) -> CapacityDecision:
    if requested < 1:
        raise ValueError(f"requested quantity must be positive, got {requested}")

    if committed + requested <= cap:
        return CapacityDecision(delivery_date, True, cap - committed - requested, committed + requested)
    return CapacityDecision(delivery_date, False, cap - committed, committed)


class CapacityAllocator:
    def __init__(self, config: BakeryConfig):
        self.cap = config.weekly_cap
        self.min_per_order = config.min_per_order
        self.max_per_order = config.max_per_order

    def check_quantity(self, raw) -> int:
        """Parse a user-supplied quantity; raises InvalidQuantity."""
        if isinstance(raw, bool):
            raise InvalidQuantity("Quantity must be a whole number")
        if isinstance(raw, float):
            if not raw.is_integer():
                raise InvalidQuantity("Quantity must be a whole number")
            raw = int(raw)
        try:
            qty = int(str(raw).strip())
        except (TypeError, ValueError):
            raise InvalidQuantity("Quantity must be a whole number")

        if qty < self.min_per_order or qty > self.max_per_order:
            raise InvalidQuantity(
                f"Please order between {self.min_per_order} and {self.max_per_order} loaves"
            )
        return qty

    def evaluate(self, delivery_date: date, requested: int, committed: int) -> CapacityDecision:
        return evaluate_capacity(delivery_date, requested, committed, self.cap)

    def remaining(self, committed: int) -> int:
        return max(self.cap - committed, 0)
