"""Five-field cron expressions: ``minute hour day-of-month month day-of-week``.

Each field is a comma list of ``*``, ``N``, ``A-B``, ``*/N`` or ``A-B/N``.
``*/N`` selects values divisible by N. Day-of-week runs 0-6 from Sunday;
7 is accepted as Sunday. All five fields must match (no OR between
day-of-month and day-of-week).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fieldflow.domain.exceptions import CronExpressionException
from fieldflow.shared.utils.datetime import ensure_utc, truncate_to_minute

# 32 days of minutes.
CRON_MAX_ITERATIONS = 60 * 24 * 32

_FIELD_BOUNDS: tuple[tuple[str, int, int], ...] = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 7),
)


def _to_int(expression: str, token: str, name: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise CronExpressionException(
            expression, f"{name}: '{token}' is not a number"
        ) from None


def _parse_field(expression: str, raw: str, name: str, low: int, high: int) -> frozenset[int]:
    values: set[int] = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            raise CronExpressionException(expression, f"{name}: empty list item")
        if part == "*":
            values.update(range(low, high + 1))
            continue
        base, _, step_raw = part.partition("/")
        if step_raw:
            step = _to_int(expression, step_raw, name)
            if step <= 0:
                raise CronExpressionException(expression, f"{name}: step must be positive")
        else:
            step = 0
        if base == "*":
            # */N: every value divisible by N
            values.update(v for v in range(low, high + 1) if v % step == 0)
            continue
        if "-" in base:
            start_raw, _, end_raw = base.partition("-")
            start = _to_int(expression, start_raw, name)
            end = _to_int(expression, end_raw, name)
        else:
            start = end = _to_int(expression, base, name)
            if step:
                end = high
        if start < low or end > high or start > end:
            raise CronExpressionException(
                expression, f"{name}: {part} outside {low}-{high}"
            )
        values.update(range(start, end + 1, step or 1))
    return frozenset(values)


@dataclass(frozen=True)
class CronSchedule:
    """Parsed cron expression (immutable)."""

    expression: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]

    @classmethod
    def parse(cls, expression: str) -> "CronSchedule":
        """Parse a five-field expression.

        Raises:
            CronExpressionException: Wrong field count, bad token or out-of-range value.
        """
        parts = (expression or "").split()
        if len(parts) != 5:
            raise CronExpressionException(
                expression or "", f"expected 5 fields, got {len(parts)}"
            )
        fields = [
            _parse_field(expression, raw, name, low, high)
            for raw, (name, low, high) in zip(parts, _FIELD_BOUNDS)
        ]
        dow = fields[4]
        if 7 in dow:
            dow = (dow - {7}) | {0}
        return cls(
            expression=expression,
            minutes=fields[0],
            hours=fields[1],
            days_of_month=fields[2],
            months=fields[3],
            days_of_week=dow,
        )

    def matches(self, moment: datetime) -> bool:
        """Whether the wall-clock minute of moment satisfies every field."""
        # Python weekday(): Monday=0; cron: Sunday=0
        weekday = (moment.weekday() + 1) % 7
        return (
            moment.minute in self.minutes
            and moment.hour in self.hours
            and moment.day in self.days_of_month
            and moment.month in self.months
            and weekday in self.days_of_week
        )

    def next_after(
        self,
        now: datetime,
        timezone: str = "UTC",
        max_iterations: int = CRON_MAX_ITERATIONS,
    ) -> datetime | None:
        """First matching minute strictly after now, as a UTC datetime.

        Fields are matched against wall-clock time in ``timezone``. Returns
        None when nothing matches within max_iterations minutes.
        """
        zone = resolve_timezone(timezone)
        candidate = truncate_to_minute(ensure_utc(now)) + timedelta(minutes=1)
        step = timedelta(minutes=1)
        for _ in range(max_iterations):
            if self.matches(candidate.astimezone(zone)):
                return candidate
            candidate += step
        return None


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Return the IANA zone, or raise CronExpressionException for an unknown name."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        raise CronExpressionException(name or "", f"unknown timezone '{name}'") from None
