"""
Header based mapping of extracted rows onto objects.

The first row of a grid is the header. Each header cell is turned into an
identifier-like name, and every following row becomes an instance of the
target type with each column assigned to the attribute of the same name.
An attribute can name its source column explicitly:

    class Order:
        order_date: Annotated[datetime | None, ExcelColumn("OrderDate")] = None
        region: str | None = None
        units: int = 0

Attributes are discovered from the type annotations of the target class
(plain classes, dataclasses and pydantic models all work, as long as the
class can be created without arguments). The attribute table is built once
per class and cached.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Any, Callable, ClassVar, TypeVar, get_args, get_origin, get_type_hints

from excel_helper.exceptions.excel_exceptions import MappingError
from excel_helper.models.excel_models import (
    INVALID_IDENTIFIER_CHARACTERS,
    ExcelFileFormat,
    ReaderOptions,
)
from excel_helper.services.cell_cast import cast_cell

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ExcelColumn:
    """
    Explicit source column name for an attribute.

    Used as ``Annotated`` metadata. The name is compared case-insensitively
    with the sanitized header text and wins over a match on the attribute
    name itself.
    """

    column_name: str


@dataclass(frozen=True)
class MappedAttribute:
    """One assignable attribute of a target type."""

    name: str
    column_name: str | None
    attribute_type: Any
    setter: Callable[[Any, Any], None]


class MappingTable:
    """
    Ordered attribute table of a target type.

    Attributes keep declaration order, base classes first.
    """

    def __init__(self, target_type: type, attributes: list[MappedAttribute]) -> None:
        self.target_type = target_type
        self.attributes = attributes

    def resolve(self, header_name: str) -> MappedAttribute | None:
        """
        Find the attribute a header binds to.

        An explicit ExcelColumn match wins over a match on the attribute
        name; both comparisons ignore case. The first attribute in
        declaration order wins within each rule.
        """
        key = header_name.casefold()
        for attribute in self.attributes:
            if attribute.column_name is not None and attribute.column_name.casefold() == key:
                return attribute
        for attribute in self.attributes:
            if attribute.name.casefold() == key:
                return attribute
        return None


@lru_cache(maxsize=None)
def get_mapping_table(target_type: type) -> MappingTable:
    """Build (once per type) the attribute table of target_type."""
    attributes = [
        MappedAttribute(
            name=name,
            column_name=_excel_column_name(metadata),
            attribute_type=attribute_type,
            setter=_make_setter(name),
        )
        for name, attribute_type, metadata in _declared_attributes(target_type)
    ]
    return MappingTable(target_type, attributes)


def sanitize_identifier(cell: Any, replacement: str = "") -> str:
    """
    Turn a header cell into an identifier-like name.

    Whitespace and the characters / - ( ) . , ; ! ? ' are removed, or
    replaced by ``replacement``. None becomes an empty string.
    """
    if cell is None:
        return ""
    return INVALID_IDENTIFIER_CHARACTERS.sub(replacement, str(cell))


def header_names(header_row: list[Any], replacement: str = "") -> list[str]:
    """
    Sanitize a header row and drop the trailing run of empty names.

    Empty names before the last non-empty one are kept so that column
    positions stay aligned with the data rows.
    """
    names = [sanitize_identifier(cell, replacement) for cell in header_row]
    while names and not names[-1]:
        names.pop()
    return names


class ObjectMapper:
    """
    Builds objects of a target type from an extracted grid.

    Example:
        mapper = ObjectMapper(ReaderOptions(suppress_mapping_errors=True))
        orders = mapper.map_rows(cells, Order, ExcelFileFormat.OPEN_XML)
    """

    def __init__(self, options: ReaderOptions | None = None) -> None:
        self.options = options or ReaderOptions()

    def map_rows(
        self,
        grid: list[list[Any]],
        target_type: type[T],
        file_format: ExcelFileFormat = ExcelFileFormat.UNKNOWN,
    ) -> list[T]:
        """
        Map every row after the header onto a new target_type instance.

        Args:
            grid: Extracted cells; the first row is the header.
            target_type: Class constructible without arguments.
            file_format: Format of the source workbook, used by cell casts.

        Returns:
            One object per data row, in row order.

        Raises:
            MappingError: If a header cannot be bound and errors are not
                suppressed.
            CellCastError: If a value cannot be converted to its attribute type.
        """
        if not grid:
            return []

        names = header_names(grid[0], self.options.invalid_identifier_replacement)
        table = get_mapping_table(target_type)

        result: list[T] = []
        for row in grid[1:]:
            item = target_type()
            for index, name in enumerate(names):
                cell = row[index] if index < len(row) else None
                if not name:
                    if cell is not None:
                        self._fail(
                            f"Property name is empty for index {index} (empty header column).",
                            index,
                            name,
                            target_type,
                        )
                    continue

                attribute = table.resolve(name)
                if attribute is None:
                    self._fail(
                        f"Failed to set property '{name}' with value '{cell}'. "
                        f"Property not found for type '{target_type.__name__}'",
                        index,
                        name,
                        target_type,
                    )
                    continue

                attribute.setter(item, cast_cell(cell, attribute.attribute_type, file_format))
            result.append(item)

        return result

    def _fail(self, message: str, index: int, name: str, target_type: type) -> None:
        if self.options.suppress_mapping_errors:
            logger.warning("Skipping column %d: %s", index, message)
            return
        raise MappingError(
            message=message,
            column_index=index,
            property_name=name,
            target_type=target_type.__name__,
        )


def _declared_attributes(target_type: type) -> list[tuple[str, Any, tuple[Any, ...]]]:
    # pydantic models: annotations are already resolved into FieldInfo
    model_fields = getattr(target_type, "model_fields", None)
    if isinstance(model_fields, dict):
        return [
            (name, field.annotation, tuple(field.metadata))
            for name, field in model_fields.items()
        ]

    declared = []
    for name, hint in get_type_hints(target_type, include_extras=True).items():
        if name.startswith("_") or get_origin(hint) is ClassVar:
            continue
        metadata: tuple[Any, ...] = ()
        if get_origin(hint) is Annotated:
            metadata = get_args(hint)[1:]
        declared.append((name, hint, metadata))
    return declared


def _excel_column_name(metadata: tuple[Any, ...]) -> str | None:
    for item in metadata:
        if isinstance(item, ExcelColumn):
            return item.column_name
    return None


def _make_setter(name: str) -> Callable[[Any, Any], None]:
    def setter(item: Any, value: Any) -> None:
        setattr(item, name, value)

    return setter
