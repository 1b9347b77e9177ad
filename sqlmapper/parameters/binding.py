import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlmapper.errors import ParameterBindingError
from .extractor import extract_parameters_with_positions

logger = logging.getLogger(__name__)

POSITIONAL_PLACEHOLDER = "?"


@dataclass(frozen=True)
class ParameterizedQuery:
    sql: str
    values: List[Any] = field(default_factory=list)
    types: List[Optional[str]] = field(default_factory=list)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    lowered = str(value).strip().lower()
    if lowered in {"true", "1", "yes", "on"}:
        return True
    if lowered in {"false", "0", "no", "off"}:
        return False
    raise ValueError(f"'{value}' is not a boolean")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value} is not an integer")
        return int(value)
    return int(value)


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _to_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"'{value}' is not a decimal") from exc


_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "string": str,
    "varchar": str,
    "int": _to_int,
    "integer": _to_int,
    "long": _to_int,
    "bigint": _to_int,
    "double": float,
    "float": float,
    "decimal": _to_decimal,
    "numeric": _to_decimal,
    "boolean": _to_bool,
    "bool": _to_bool,
    "date": _to_date,
    "time": _to_time,
    "datetime": _to_datetime,
    "timestamp": _to_datetime,
}


def coerce_parameter_value(name: str, value: Any, type_name: Optional[str]) -> Any:
    """
    Convert ``value`` to the Python type matching ``type_name``. Unknown or
    missing type names keep the value as supplied.
    """
    if value is None or not type_name:
        return value
    coercer = _COERCERS.get(type_name.strip().lower())
    if coercer is None:
        return value
    try:
        return coercer(value)
    except (TypeError, ValueError) as exc:
        raise ParameterBindingError(
            f"Parameter '{name}' cannot be converted to {type_name}: {exc}",
            parameter_name=name,
        ) from exc


def bind_named_parameters(
    sql: str,
    values: Optional[Mapping[str, Any]] = None,
    types: Optional[Mapping[str, str]] = None,
) -> ParameterizedQuery:
    """
    Rewrite ``:name`` placeholders to ``?`` and collect the values to bind.

    Values are listed once per placeholder occurrence, in source order.
    Supplied values that no placeholder references are ignored.
    """
    values = values or {}
    types = types or {}
    positions = extract_parameters_with_positions(sql)
    if not positions:
        return ParameterizedQuery(sql=sql)

    for position in positions:
        if position.name not in values:
            raise ParameterBindingError(
                f"Parameter not provided: {position.name}",
                parameter_name=position.name,
            )

    # Right to left so offsets of the remaining placeholders stay valid.
    rewritten = sql
    for position in reversed(positions):
        rewritten = rewritten[: position.start] + POSITIONAL_PLACEHOLDER + rewritten[position.end:]

    bound_values: List[Any] = []
    bound_types: List[Optional[str]] = []
    for position in positions:
        type_name = types.get(position.name)
        bound_values.append(coerce_parameter_value(position.name, values[position.name], type_name))
        bound_types.append(type_name)

    logger.debug("Bound %d placeholder(s) for %d distinct parameter(s).", len(positions), len({p.name for p in positions}))
    return ParameterizedQuery(sql=rewritten, values=bound_values, types=bound_types)
