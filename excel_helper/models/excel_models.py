"""
Pydantic models for spreadsheet reading.

This module contains the data models shared by the decoder adapters, the
range extractor and the ExcelReader session: the decoded workbook and its
sheets, the extraction window requested by a caller, and the session
options.

All models use Pydantic v2 for validation.
"""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from excel_helper.exceptions.excel_exceptions import CellRangeError, SheetNotFoundError

# Characters removed from header cells when turning them into attribute names.
INVALID_IDENTIFIER_CHARACTERS = re.compile(r"[/\-().,;!?']|\s")


class ExcelFileFormat(str, Enum):
    """
    Encoding of a workbook.

    UNKNOWN asks the reader to detect the format from the leading bytes of
    the stream (or from the extension when reading a file by name).
    """

    UNKNOWN = "unknown"
    BINARY = "binary"
    OPEN_XML = "open_xml"


class SheetData(BaseModel):
    """
    Decoded contents of a single worksheet.

    Rows are rectangular: every row holds exactly ``column_count`` cells and
    empty cells are None. Trailing rows and columns without any value are
    not part of the sheet.

    Attributes:
        sheet_name: Name of the sheet.
        index: The 0-based index of the sheet in the workbook.
        rows: List of rows, where each row is a list of cell values.
        row_count: Number of rows in the data.
        column_count: Number of columns in the data.
    """

    sheet_name: str = Field(
        description="Name of the sheet",
    )
    index: int = Field(
        default=0,
        ge=0,
        description="The 0-based index of the sheet in the workbook",
    )
    rows: list[list[Any]] = Field(
        default_factory=list,
        description="List of rows, where each row is a list of cell values",
    )
    row_count: int = Field(
        ge=0,
        description="Number of rows in the data",
    )
    column_count: int = Field(
        ge=0,
        description="Number of columns in the data",
    )

    @classmethod
    def from_rows(cls, sheet_name: str, index: int, rows: list[list[Any]]) -> "SheetData":
        """
        Build a SheetData from raw normalized rows.

        Trailing empty rows and columns are dropped and the remaining rows
        are padded with None to a common width.

        Args:
            sheet_name: Name of the sheet.
            index: The 0-based index of the sheet.
            rows: Rows of normalized cell values, possibly ragged.

        Returns:
            SheetData with rectangular rows.
        """
        trimmed = [list(row) for row in rows]
        while trimmed and all(cell is None for cell in trimmed[-1]):
            trimmed.pop()

        column_count = 0
        for row in trimmed:
            for col_idx in range(len(row) - 1, -1, -1):
                if row[col_idx] is not None:
                    column_count = max(column_count, col_idx + 1)
                    break

        normalized = [(row + [None] * column_count)[:column_count] for row in trimmed]

        return cls(
            sheet_name=sheet_name,
            index=index,
            rows=normalized,
            row_count=len(normalized),
            column_count=column_count,
        )


class WorkbookData(BaseModel):
    """
    Decoded workbook: the ordered collection of its sheets.

    Attributes:
        file_format: Format the workbook was decoded from.
        sheets: Sheets in workbook order.
    """

    file_format: ExcelFileFormat = Field(
        description="Format the workbook was decoded from",
    )
    sheets: list[SheetData] = Field(
        default_factory=list,
        description="Sheets in workbook order",
    )

    @property
    def sheet_names(self) -> list[str]:
        """Names of all sheets in workbook order."""
        return [sheet.sheet_name for sheet in self.sheets]

    def get_sheet(self, worksheet: int | str) -> SheetData:
        """
        Select a sheet by zero-based index or by exact name.

        Args:
            worksheet: Sheet index (int) or case-sensitive sheet name (str).

        Returns:
            The selected SheetData.

        Raises:
            SheetNotFoundError: If no sheet matches.
        """
        if isinstance(worksheet, int) and not isinstance(worksheet, bool):
            if 0 <= worksheet < len(self.sheets):
                return self.sheets[worksheet]
            raise SheetNotFoundError(
                sheet_name=f"index {worksheet}",
                available_sheets=self.sheet_names,
            )

        for sheet in self.sheets:
            if sheet.sheet_name == worksheet:
                return sheet

        raise SheetNotFoundError(
            sheet_name=str(worksheet),
            available_sheets=self.sheet_names,
        )


class ExtractionWindow(BaseModel):
    """
    Rectangular window of a sheet requested by a caller.

    Row and column numbers are 1-based. A count of 0 means "up to the end
    of the sheet".

    Attributes:
        start_row: First row to read (1-based).
        start_column: First column to read (1-based).
        number_of_rows: Number of rows to return, 0 for the remainder.
        number_of_columns: Number of columns to return, 0 for the remainder.
        remove_empty_rows: Drop rows without any value. Dropped rows are
            never replaced by padding rows.
    """

    start_row: int = Field(
        ge=1,
        description="First row to read (1-based)",
    )
    start_column: int = Field(
        ge=1,
        description="First column to read (1-based)",
    )
    number_of_rows: int = Field(
        default=0,
        ge=0,
        description="Number of rows to return, 0 for all remaining rows",
    )
    number_of_columns: int = Field(
        default=0,
        ge=0,
        description="Number of columns to return, 0 for all remaining columns",
    )
    remove_empty_rows: bool = Field(
        default=True,
        description="Whether to drop rows that contain no value",
    )

    @classmethod
    def from_a1(cls, a1_range: str, remove_empty_rows: bool = False) -> "ExtractionWindow":
        """
        Parse an A1 notation range into an ExtractionWindow.

        Supports a single cell ("B3") or a rectangular range ("B3:D10").

        Args:
            a1_range: A1 notation string.
            remove_empty_rows: Whether to drop rows without any value.

        Returns:
            ExtractionWindow covering exactly the given range.

        Raises:
            CellRangeError: If the range notation is invalid.
        """
        normalized = a1_range.strip().upper()

        single_match = re.match(r"^([A-Z]+)(\d+)$", normalized)
        range_match = re.match(r"^([A-Z]+)(\d+):([A-Z]+)(\d+)$", normalized)

        if single_match:
            start_col = end_col = column_letter_to_number(single_match.group(1))
            start_row = end_row = int(single_match.group(2))
        elif range_match:
            start_col = column_letter_to_number(range_match.group(1))
            start_row = int(range_match.group(2))
            end_col = column_letter_to_number(range_match.group(3))
            end_row = int(range_match.group(4))
        else:
            raise CellRangeError(
                cell_range=a1_range,
                reason="Invalid A1 notation format. Expected format: 'A1' or 'A1:C10'",
            )

        if start_row < 1:
            raise CellRangeError(cell_range=a1_range, reason="Row numbers start at 1")

        if start_row > end_row or start_col > end_col:
            raise CellRangeError(
                cell_range=a1_range,
                reason="Start position must be before end position",
            )

        return cls(
            start_row=start_row,
            start_column=start_col,
            number_of_rows=end_row - start_row + 1,
            number_of_columns=end_col - start_col + 1,
            remove_empty_rows=remove_empty_rows,
        )


class ReaderOptions(BaseModel):
    """
    Session-level options of an ExcelReader.

    Attributes:
        invalid_identifier_replacement: Replacement for characters that are
            not allowed in an identifier when turning header cells into
            attribute names. Removed by default.
        suppress_mapping_errors: When True, header columns that cannot be
            bound to an attribute are skipped instead of raising MappingError.
    """

    invalid_identifier_replacement: str = Field(
        default="",
        description="Replacement for invalid identifier characters in headers",
    )
    suppress_mapping_errors: bool = Field(
        default=False,
        description="Skip unmappable header columns instead of raising",
    )

    @field_validator("invalid_identifier_replacement")
    @classmethod
    def validate_replacement(cls, v: str) -> str:
        """Ensure the replacement contains no character it would replace."""
        if INVALID_IDENTIFIER_CHARACTERS.search(v):
            raise ValueError(
                "invalid_identifier_replacement must not contain whitespace "
                "or any of / - ( ) . , ; ! ? '"
            )
        return v


def column_letter_to_number(column_letter: str) -> int:
    """
    Convert Excel column letter(s) to a 1-based column number.

    Args:
        column_letter: Column letter(s) like "A", "B", "AA", "AB".

    Returns:
        1-based column number.
    """
    result = 0
    for char in column_letter.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result
