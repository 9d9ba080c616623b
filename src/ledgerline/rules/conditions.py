"""Typed rule conditions.

A rule may carry extra predicates besides its keyword. They are stored as a
list of tagged dictionaries, e.g. ``{"type": "amount_range", "min_cents": 500}``,
and parsed into the dataclasses below when a rule is created or loaded, so
invalid conditions are rejected up front instead of being inspected ad hoc
while matching.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Union

from ledgerline.domain.errors import ValidationError
from ledgerline.rules.safe_regex import safe_regex_search, validate_regex_pattern


@dataclass(frozen=True)
class AmountRange:
    """Absolute amount bounds in cents, inclusive."""

    min_cents: Optional[int] = None
    max_cents: Optional[int] = None

    type = "amount_range"

    def matches(self, amount: int, txn_date: date, description: str) -> bool:
        value = abs(amount)
        if self.min_cents is not None and value < self.min_cents:
            return False
        if self.max_cents is not None and value > self.max_cents:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "min_cents": self.min_cents, "max_cents": self.max_cents}


@dataclass(frozen=True)
class MonthRange:
    """Calendar month bounds (1-12), inclusive."""

    start_month: Optional[int] = None
    end_month: Optional[int] = None

    type = "month_range"

    def matches(self, amount: int, txn_date: date, description: str) -> bool:
        if self.start_month is not None and txn_date.month < self.start_month:
            return False
        if self.end_month is not None and txn_date.month > self.end_month:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "start_month": self.start_month, "end_month": self.end_month}


@dataclass(frozen=True)
class DayOfMonthRange:
    """Day-of-month bounds (1-31), inclusive."""

    start_day: Optional[int] = None
    end_day: Optional[int] = None

    type = "day_range"

    def matches(self, amount: int, txn_date: date, description: str) -> bool:
        if self.start_day is not None and txn_date.day < self.start_day:
            return False
        if self.end_day is not None and txn_date.day > self.end_day:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "start_day": self.start_day, "end_day": self.end_day}


@dataclass(frozen=True)
class DateRange:
    """Absolute date bounds, inclusive."""

    start: Optional[date] = None
    end: Optional[date] = None

    type = "date_range"

    def matches(self, amount: int, txn_date: date, description: str) -> bool:
        if self.start is not None and txn_date < self.start:
            return False
        if self.end is not None and txn_date > self.end:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


@dataclass(frozen=True)
class DescriptionRegex:
    """Extra case-insensitive regex the description must match."""

    pattern: str

    type = "description_regex"

    def matches(self, amount: int, txn_date: date, description: str) -> bool:
        return safe_regex_search(self.pattern, description)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "pattern": self.pattern}


Condition = Union[AmountRange, MonthRange, DayOfMonthRange, DateRange, DescriptionRegex]


def _optional_int(data: dict[str, Any], key: str, low: int, high: Optional[int] = None) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Condition field '{key}' must be an integer")
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise ValidationError(f"Condition field '{key}' must be {bound}")
    return value


def _optional_date(data: dict[str, Any], key: str) -> Optional[date]:
    value = data.get(key)
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Condition field '{key}' must be an ISO date")


def _check_order(low: Any, high: Any, name: str) -> None:
    if low is not None and high is not None and low > high:
        raise ValidationError(f"Condition '{name}' has its lower bound above its upper bound")


def parse_condition(data: Any) -> Condition:
    """Parse and validate one tagged condition dictionary.

    Raises:
        ValidationError: On unknown tags or invalid bounds
    """
    if isinstance(data, (AmountRange, MonthRange, DayOfMonthRange, DateRange, DescriptionRegex)):
        data = data.to_dict()
    if not isinstance(data, dict):
        raise ValidationError("Each condition must be an object with a 'type'")

    kind = data.get("type")
    if kind == AmountRange.type:
        condition = AmountRange(_optional_int(data, "min_cents", 0), _optional_int(data, "max_cents", 0))
        _check_order(condition.min_cents, condition.max_cents, kind)
    elif kind == MonthRange.type:
        condition = MonthRange(
            _optional_int(data, "start_month", 1, 12), _optional_int(data, "end_month", 1, 12)
        )
        _check_order(condition.start_month, condition.end_month, kind)
    elif kind == DayOfMonthRange.type:
        condition = DayOfMonthRange(
            _optional_int(data, "start_day", 1, 31), _optional_int(data, "end_day", 1, 31)
        )
        _check_order(condition.start_day, condition.end_day, kind)
    elif kind == DateRange.type:
        condition = DateRange(_optional_date(data, "start"), _optional_date(data, "end"))
        _check_order(condition.start, condition.end, kind)
    elif kind == DescriptionRegex.type:
        pattern = data.get("pattern")
        if not isinstance(pattern, str) or not pattern:
            raise ValidationError("Condition 'description_regex' requires a pattern")
        error = validate_regex_pattern(pattern)
        if error:
            raise ValidationError(error)
        condition = DescriptionRegex(pattern)
    else:
        raise ValidationError(f"Unknown condition type '{kind}'")

    return condition


def parse_conditions(data: Optional[list[Any]]) -> tuple[Condition, ...]:
    """Parse a stored condition list; None means no conditions."""
    if not data:
        return ()
    if not isinstance(data, list):
        raise ValidationError("Conditions must be a list")
    return tuple(parse_condition(item) for item in data)


def conditions_to_data(conditions: tuple[Condition, ...]) -> list[dict[str, Any]]:
    """Serialize conditions for storage."""
    return [condition.to_dict() for condition in conditions]
