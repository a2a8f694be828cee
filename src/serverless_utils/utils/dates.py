"""Date arithmetic by calendar unit.

Example:
    ```python
    manipulate_date("add", datetime(2024, 1, 31), 1, "month")  # 2024-02-29
    ```
"""

__all__ = [
    "DateOperation",
    "DateUnit",
    "manipulate_date",
]

import calendar
from datetime import datetime, timedelta
from enum import Enum
from typing import Union


class DateOperation(Enum):
    ADD = "add"
    SUBTRACT = "subtract"


class DateUnit(Enum):
    MILLISECOND = "millisecond"
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def parse(cls, value: Union["DateUnit", str]) -> "DateUnit":
        if isinstance(value, DateUnit):
            return value
        normalized = value.lower()
        if normalized.endswith("s"):
            normalized = normalized[:-1]
        return cls(normalized)


_TIMEDELTA_ARGS = {
    DateUnit.MILLISECOND: "milliseconds",
    DateUnit.SECOND: "seconds",
    DateUnit.MINUTE: "minutes",
    DateUnit.HOUR: "hours",
    DateUnit.DAY: "days",
    DateUnit.WEEK: "weeks",
}


def manipulate_date(
    operation: Union[DateOperation, str],
    current_date: datetime,
    value: int,
    unit: Union[DateUnit, str],
) -> datetime:
    """Add or subtract ``value`` units from a datetime.

    Month and year arithmetic keeps the day of month, clamped to the last
    day of the target month. The timezone of ``current_date`` is preserved.

    Args:
        operation (Union[DateOperation, str]): "add" or "subtract"
        current_date (datetime): starting point
        value (int): number of units
        unit (Union[DateUnit, str]): millisecond, second, minute, hour, day, week,
            month or year (plural forms accepted)

    Raises:
        ValueError: if the operation or unit is unknown

    Returns:
        datetime: the shifted datetime
    """
    sign = 1 if DateOperation(operation) == DateOperation.ADD else -1
    unit = DateUnit.parse(unit)

    if unit in _TIMEDELTA_ARGS:
        return current_date + timedelta(**{_TIMEDELTA_ARGS[unit]: sign * value})

    months = sign * value * (12 if unit == DateUnit.YEAR else 1)
    return _add_months(current_date, months)


def _add_months(date: datetime, months: int) -> datetime:
    month_index = date.month - 1 + months
    year = date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(date.day, calendar.monthrange(year, month)[1])
    return date.replace(year=year, month=month, day=day)
