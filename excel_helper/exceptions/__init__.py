"""
Custom exceptions for excel-helper.

Provides type-safe, descriptive exceptions for error handling throughout
the library.
"""

from excel_helper.exceptions.excel_exceptions import (
    CellCastError,
    CellRangeError,
    ExcelHelperError,
    FormatDetectionError,
    InvalidFileFormatError,
    MappingError,
    ReadError,
    ResourceReleaseError,
    SheetNotFoundError,
)
from excel_helper.exceptions.excel_exceptions import (
    FileNotFoundError as ExcelFileNotFoundError,
)

__all__ = [
    "ExcelHelperError",
    "ExcelFileNotFoundError",
    "InvalidFileFormatError",
    "FormatDetectionError",
    "SheetNotFoundError",
    "CellRangeError",
    "ReadError",
    "CellCastError",
    "MappingError",
    "ResourceReleaseError",
]
