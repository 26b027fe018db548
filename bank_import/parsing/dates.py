"""
Date Normalizer

Parses a statement date cell in one caller-chosen format.

No format sniffing: 03/04/2024 means 3 April under DD/MM/YYYY and
4 March under MM/DD/YYYY, and a day above 12 in the month position
is an error rather than a silent swap.
"""

import re
from datetime import date

from bank_import.errors import DateParseError
from bank_import.models.transaction import DateFormat


# (separator, order of the day/month/year tokens)
_LAYOUTS: dict[DateFormat, tuple[str, tuple[str, str, str]]] = {
    DateFormat.DD_MM_YYYY: ("/", ("day", "month", "year")),
    DateFormat.MM_DD_YYYY: ("/", ("month", "day", "year")),
    DateFormat.YYYY_MM_DD: ("-", ("year", "month", "day")),
}

_DAY_OR_MONTH = re.compile(r"^\d{1,2}$", re.ASCII)
_YEAR = re.compile(r"^\d{4}$", re.ASCII)


def parse_date(value: str, date_format: DateFormat) -> date:
    """
    Parse `value` as a calendar date in `date_format`.

    Raises:
        DateParseError: Wrong token count, non-numeric token, day outside
            1-31, month outside 1-12, year not 4 digits, or a day the month
            does not have (e.g. 31/02/2024)
    """
    separator, order = _LAYOUTS[DateFormat(date_format)]
    tokens = value.strip().split(separator)
    if len(tokens) != 3:
        raise DateParseError(f"Expected {DateFormat(date_format).value}, got {value!r}")

    parts = dict(zip(order, (token.strip() for token in tokens)))

    if not _YEAR.match(parts["year"]):
        raise DateParseError(f"Year must have 4 digits: {value!r}")
    if not _DAY_OR_MONTH.match(parts["month"]) or not _DAY_OR_MONTH.match(parts["day"]):
        raise DateParseError(f"Day and month must be numeric: {value!r}")

    year, month, day = int(parts["year"]), int(parts["month"]), int(parts["day"])
    if not 1 <= month <= 12:
        raise DateParseError(f"Month {month} out of range in {value!r}")
    if not 1 <= day <= 31:
        raise DateParseError(f"Day {day} out of range in {value!r}")

    try:
        return date(year, month, day)
    except ValueError as e:
        raise DateParseError(f"Invalid date {value!r}: {e}")


def format_date(value: date, date_format: DateFormat) -> str:
    """Render a date the way a statement in `date_format` would."""
    date_format = DateFormat(date_format)
    if date_format is DateFormat.DD_MM_YYYY:
        return value.strftime("%d/%m/%Y")
    if date_format is DateFormat.MM_DD_YYYY:
        return value.strftime("%m/%d/%Y")
    return value.isoformat()
