"""
Data models for excel-helper.

Contains Pydantic models for decoded workbooks, extraction windows and
reader options.
"""

from excel_helper.models.excel_models import (
    INVALID_IDENTIFIER_CHARACTERS,
    ExcelFileFormat,
    ExtractionWindow,
    ReaderOptions,
    SheetData,
    WorkbookData,
    column_letter_to_number,
)

__all__ = [
    "INVALID_IDENTIFIER_CHARACTERS",
    "ExcelFileFormat",
    "SheetData",
    "WorkbookData",
    "ExtractionWindow",
    "ReaderOptions",
    "column_letter_to_number",
]
