"""
Cell value casting.

Converts the dynamically typed values produced by the decoders into the
scalar type a caller asked for, either cell by cell (convert_grid) or
per attribute when building objects (ObjectMapper).

Legacy binary workbooks report date cells as serial numbers. When the
source is binary and a datetime or date is requested, numbers are read
as OLE Automation dates: days since 1899-12-30, where the fraction is
the time of day. Serial 60 is the non-existent 1900-02-29 that Excel
keeps for Lotus 1-2-3 compatibility, so serials below 61 are one day
off from what Excel displays.
"""

import math
import types
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Annotated, Any, Callable, Union, get_args, get_origin

from excel_helper.exceptions.excel_exceptions import CellCastError
from excel_helper.models.excel_models import ExcelFileFormat

EXCEL_EPOCH = datetime(1899, 12, 30)
# Bounds of a legal OLE Automation date (years 100 to 9999).
MIN_OA_DATE = -657435.0
MAX_OA_DATE = 2958466.0


def unwrap_type(target_type: Any) -> Any:
    """
    Strip Annotated[...] and Optional[...] wrappers from a type.

    ``int | None`` and ``Optional[int]`` become ``int``. Unions of more
    than one non-None type are returned unchanged.
    """
    origin = get_origin(target_type)

    if origin is Annotated:
        return unwrap_type(get_args(target_type)[0])

    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(target_type) if arg is not type(None)]
        if len(args) == 1:
            return unwrap_type(args[0])

    return target_type


def from_oa_date(serial: float) -> datetime:
    """
    Convert an OLE Automation date serial to a datetime.

    The integer part counts days from 1899-12-30 and may be negative; the
    fractional part is always the time of day, rounded to milliseconds.

    Args:
        serial: Serial date number.

    Returns:
        The corresponding naive datetime.

    Raises:
        ValueError: If the serial is outside the representable range.
    """
    if not MIN_OA_DATE < serial < MAX_OA_DATE:
        raise ValueError(f"Serial date {serial} is out of range")

    days = math.trunc(serial)
    milliseconds = round(abs(serial - days) * 86_400_000)
    return EXCEL_EPOCH + timedelta(days=days, milliseconds=milliseconds)


def cast_cell(
    value: Any,
    target_type: Any,
    file_format: ExcelFileFormat = ExcelFileFormat.UNKNOWN,
) -> Any:
    """
    Cast a cell value to a target type.

    None stays None whatever the target type. Optional and Annotated
    wrappers are unwrapped before converting.

    Args:
        value: Normalized cell value.
        target_type: Requested type (int, float, str, bool, Decimal,
            datetime, date, time, timedelta, Any, an Enum or any other
            class that accepts the value in its constructor).
        file_format: Format of the source workbook.

    Returns:
        The converted value.

    Raises:
        CellCastError: If the value cannot be converted.
    """
    if value is None:
        return None

    target = unwrap_type(target_type)

    if get_origin(target) is Union or get_origin(target) is types.UnionType:
        return _cast_union(value, target, file_format)

    try:
        return _convert(value, target, file_format)
    except (ValueError, TypeError, ArithmeticError) as e:
        raise CellCastError(value=value, target_type=target, reason=str(e)) from e


def convert_grid(
    grid: list[list[Any]],
    target_type: Any,
    file_format: ExcelFileFormat = ExcelFileFormat.UNKNOWN,
) -> list[list[Any]]:
    """
    Cast every cell of a grid to target_type.

    Raises:
        CellCastError: On the first cell that cannot be converted.
    """
    return [[cast_cell(cell, target_type, file_format) for cell in row] for row in grid]


def _cast_union(value: Any, target: Any, file_format: ExcelFileFormat) -> Any:
    last_error: CellCastError | None = None
    for member in get_args(target):
        if member is type(None):
            continue
        try:
            return cast_cell(value, member, file_format)
        except CellCastError as e:
            last_error = e
    raise CellCastError(
        value=value,
        target_type=target,
        reason=last_error.reason if last_error else "No union member accepts the value",
    ) from last_error


def _convert(value: Any, target: Any, file_format: ExcelFileFormat) -> Any:
    if target is Any or target is object:
        return value

    if (
        file_format == ExcelFileFormat.BINARY
        and target in (datetime, date)
        and not isinstance(value, date)
    ):
        converted = from_oa_date(_to_float(value))
        return converted if target is datetime else converted.date()

    converter = _CONVERTERS.get(target)
    if converter is not None:
        return converter(value)

    if isinstance(target, type):
        if isinstance(value, target):
            return value
        return target(value)

    raise TypeError(f"Unsupported target type {target!r}")


def _invalid_cast(value: Any, target_name: str) -> TypeError:
    return TypeError(f"Invalid cast from '{type(value).__name__}' to '{target_name}'")


def _to_str(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _to_int(value: Any) -> int:
    if isinstance(value, (bool, int)):
        return int(value)
    if isinstance(value, (float, Decimal)):
        # round() is half-to-even and raises for inf and nan
        return int(round(value))
    if isinstance(value, str):
        return int(value.strip())
    raise _invalid_cast(value, "int")


def _to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise _invalid_cast(value, "float")


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    raise _invalid_cast(value, "Decimal")


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "false"):
            return text == "true"
        raise ValueError(f"Not a boolean string: {value!r}")
    raise _invalid_cast(value, "bool")


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise _invalid_cast(value, "datetime")


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip()).date()
    raise _invalid_cast(value, "date")


def _to_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise _invalid_cast(value, "time")


def _to_timedelta(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Excel durations are fractions of a day
        return timedelta(days=value)
    raise _invalid_cast(value, "timedelta")


_CONVERTERS: dict[type, Callable[[Any], Any]] = {
    str: _to_str,
    int: _to_int,
    float: _to_float,
    Decimal: _to_decimal,
    bool: _to_bool,
    datetime: _to_datetime,
    date: _to_date,
    time: _to_time,
    timedelta: _to_timedelta,
}
