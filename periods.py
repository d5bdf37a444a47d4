import re
from dataclasses import dataclass
from datetime import date

from errors import BadRequestError

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


class MonthFormatError(BadRequestError):
    pass


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def month_start(year: int, month: int) -> date:
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 1) - date.resolution
    return date(year, month + 1, 1) - date.resolution


def parse_month(value: str) -> date:
    """Parse a ``YYYY-MM`` string into the first day of that month."""
    match = _MONTH_RE.match((value or "").strip())
    if not match:
        raise MonthFormatError(f"Invalid month {value!r}, expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise MonthFormatError(f"Invalid month {value!r}, expected YYYY-MM")
    return month_start(year, month)


def resolve_month(value: str) -> Period:
    first = parse_month(value)
    return Period(
        f"{first.year:04d}-{first.month:02d}",
        first,
        month_end(first.year, first.month),
    )
