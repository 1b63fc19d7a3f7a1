import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()

# Weekday numbers follow Sunday=0 ... Saturday=6
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


@dataclass(frozen=True)
class CutoffRule:
    cutoff_weekday: int = 6  # Saturday
    cutoff_hour: int = 17  # 17:00
    timezone: str = "America/Chicago"

    def __post_init__(self):
        if not 0 <= self.cutoff_weekday <= 6:
            raise ValueError(f"cutoff_weekday must be 0-6, got {self.cutoff_weekday}")
        if not 0 <= self.cutoff_hour <= 23:
            raise ValueError(f"cutoff_hour must be 0-23, got {self.cutoff_hour}")
        # Unknown zone names fail here, at load time
        ZoneInfo(self.timezone)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def describe(self) -> str:
        return f"{WEEKDAY_NAMES[self.cutoff_weekday]} {self.cutoff_hour:02d}:00 ({self.timezone})"


@dataclass(frozen=True)
class BakeryConfig:
    app_title: str = "the upper crust"
    db_path: str = os.path.join(os.path.dirname(os.path.abspath(__file__)), "orders.db")
    secret_key: str = "upper-crust-secret-key-change-in-production"
    admin_token: str = "change-me"
    cors_origin: str = "http://localhost:3000"

    cutoff: CutoffRule = field(default_factory=CutoffRule)
    weekly_cap: int = 10  # loaves per delivery Monday
    min_per_order: int = 1
    max_per_order: int = 3

    def __post_init__(self):
        if self.weekly_cap < 1:
            raise ValueError("weekly_cap must be at least 1")
        if not 1 <= self.min_per_order <= self.max_per_order:
            raise ValueError("per-order bounds must satisfy 1 <= min <= max")


def load_config() -> BakeryConfig:
    defaults = BakeryConfig()
    return BakeryConfig(
        app_title=os.getenv("APP_TITLE", defaults.app_title),
        db_path=os.getenv("DB_PATH", defaults.db_path),
        secret_key=os.getenv("SECRET_KEY", defaults.secret_key),
        admin_token=os.getenv("ADMIN_TOKEN", defaults.admin_token),
        cors_origin=os.getenv("CORS_ORIGIN", defaults.cors_origin),
        cutoff=CutoffRule(
            cutoff_weekday=int(os.getenv("CUTOFF_WEEKDAY", "6")),
            cutoff_hour=int(os.getenv("CUTOFF_HOUR", "17")),
            timezone=os.getenv("BAKERY_TZ", "America/Chicago"),
        ),
        weekly_cap=int(os.getenv("WEEKLY_CAP", "10")),
        min_per_order=int(os.getenv("MIN_PER_ORDER", "1")),
        max_per_order=int(os.getenv("MAX_PER_ORDER", "3")),
    )
