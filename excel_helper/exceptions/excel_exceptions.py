"""
Custom exceptions for spreadsheet reading operations.

This module defines a hierarchy of exceptions for the error conditions that
can occur while opening a workbook, selecting a worksheet, extracting a cell
range and projecting it onto typed values or objects. All exceptions inherit
from ExcelHelperError for consistent error handling.

Example:
    try:
        with ExcelReader("orders.xlsx") as reader:
            orders = reader.get_range("orders", Order, 1, 3)
    except SheetNotFoundError as e:
        logger.error(f"Sheet error: {e.sheet_name}")
    except ExcelHelperError as e:
        logger.error(f"General error: {e}")
"""

from typing import Any


class ExcelHelperError(Exception):
    """
    Base exception for all excel-helper errors.

    All custom exceptions in this module inherit from this class,
    allowing consumers to catch all spreadsheet related errors with a
    single except clause.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Optional additional context about the error.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "EXCEL_ERROR",
        details: dict | None = None,
    ) -> None:
        """
        Initialize the ExcelHelperError.

        Args:
            message: Human-readable error description.
            error_code: Machine-readable error code.
            details: Optional additional context about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """
        Convert exception to a dictionary.

        Returns:
            Dictionary containing error_code, message, and details.
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class FileNotFoundError(ExcelHelperError):
    """
    Raised when the specified Excel file does not exist.

    Attributes:
        file_path: Path to the file that was not found.
    """

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        super().__init__(
            message=f"Excel file not found: {file_path}",
            error_code="FILE_NOT_FOUND",
            details={"file_path": file_path},
        )


class InvalidFileFormatError(ExcelHelperError):
    """
    Raised when the input is not a readable Excel workbook.

    This covers unsupported file extensions as well as content that the
    openpyxl or xlrd decoders refuse to parse.

    Attributes:
        file_path: Path (or stream description) of the invalid input.
        expected_formats: List of expected/supported formats.
    """

    def __init__(
        self,
        file_path: str,
        expected_formats: list[str] | None = None,
        reason: str | None = None,
    ) -> None:
        """
        Initialize the InvalidFileFormatError.

        Args:
            file_path: Path to the invalid file.
            expected_formats: List of expected/supported formats.
            reason: Specific reason for the format error.
        """
        self.file_path = file_path
        self.expected_formats = expected_formats or [".xls", ".xlsx", ".xlsm"]
        self.reason = reason

        message = f"Invalid Excel file format: {file_path}"
        if reason:
            message += f" - {reason}"

        super().__init__(
            message=message,
            error_code="INVALID_FILE_FORMAT",
            details={
                "file_path": file_path,
                "expected_formats": self.expected_formats,
                "reason": reason,
            },
        )


class FormatDetectionError(ExcelHelperError):
    """
    Raised when the workbook format cannot be detected from a stream.

    Detection peeks at the leading bytes and rewinds, so it needs a seekable
    stream. Pass an explicit ExcelFileFormat for non-seekable streams.
    """

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason

        message = "Unable to determine stream format"
        if reason:
            message += f" - {reason}"

        super().__init__(
            message=message,
            error_code="FORMAT_DETECTION_FAILED",
            details={"reason": reason},
        )


class SheetNotFoundError(ExcelHelperError):
    """
    Raised when the specified sheet does not exist in the workbook.

    Attributes:
        sheet_name: Name (or index description) of the sheet that was not found.
        available_sheets: List of sheets available in the workbook.
    """

    def __init__(
        self,
        sheet_name: str,
        available_sheets: list[str] | None = None,
    ) -> None:
        """
        Initialize the SheetNotFoundError.

        Args:
            sheet_name: Name of the sheet that was not found.
            available_sheets: List of sheets available in the workbook.
        """
        self.sheet_name = sheet_name
        self.available_sheets = available_sheets or []

        message = f"Sheet not found: {sheet_name}"
        if available_sheets:
            message += f". Available sheets: {', '.join(available_sheets)}"

        super().__init__(
            message=message,
            error_code="SHEET_NOT_FOUND",
            details={
                "sheet_name": sheet_name,
                "available_sheets": self.available_sheets,
            },
        )


class CellRangeError(ExcelHelperError):
    """
    Raised when an invalid extraction window or cell range is specified.

    This covers invalid A1 syntax (e.g., "A1:"), ranges where the end lies
    before the start, and windows with non-positive start positions or
    negative sizes.

    Attributes:
        cell_range: The invalid cell range description.
        reason: Specific reason why the range is invalid.
    """

    def __init__(
        self,
        cell_range: str,
        reason: str | None = None,
    ) -> None:
        self.cell_range = cell_range
        self.reason = reason

        message = f"Invalid cell range: {cell_range}"
        if reason:
            message += f" - {reason}"

        super().__init__(
            message=message,
            error_code="INVALID_CELL_RANGE",
            details={
                "cell_range": cell_range,
                "reason": reason,
            },
        )


class ReadError(ExcelHelperError):
    """
    Raised when an error occurs during Excel file reading.

    This is a general exception for read operations that fail
    for reasons not covered by more specific exceptions.

    Attributes:
        file_path: Path (or stream description) of the input being read.
        operation: The specific read operation that failed.
    """

    def __init__(
        self,
        file_path: str,
        operation: str = "read",
        reason: str | None = None,
    ) -> None:
        """
        Initialize the ReadError.

        Args:
            file_path: Path to the file being read.
            operation: The specific read operation that failed.
            reason: Specific reason for the read failure.
        """
        self.file_path = file_path
        self.operation = operation
        self.reason = reason

        message = f"Failed to {operation} Excel file: {file_path}"
        if reason:
            message += f" - {reason}"

        super().__init__(
            message=message,
            error_code="READ_ERROR",
            details={
                "file_path": file_path,
                "operation": operation,
                "reason": reason,
            },
        )


class CellCastError(ExcelHelperError):
    """
    Raised when a cell value cannot be converted to the requested type.

    The message keeps the original conversion failure and names the
    offending value and the target type. The original exception is
    available as ``__cause__``.

    Attributes:
        value: The raw cell value.
        target_type: The type the value was being converted to.
        reason: Message of the underlying conversion failure.
    """

    def __init__(
        self,
        value: Any,
        target_type: Any,
        reason: str,
    ) -> None:
        self.value = value
        self.target_type = target_type
        self.reason = reason

        type_name = getattr(target_type, "__name__", str(target_type))
        super().__init__(
            message=f"{reason} (object '{value}' to type '{type_name}')",
            error_code="CELL_CAST_FAILED",
            details={
                "value": repr(value),
                "target_type": type_name,
                "reason": reason,
            },
        )


class MappingError(ExcelHelperError):
    """
    Raised when a header column cannot be bound to an attribute.

    This happens when a data row has a value under an empty header or
    when no attribute of the target type matches a header name. These
    errors can be suppressed with ReaderOptions.suppress_mapping_errors.

    Attributes:
        column_index: Zero-based column index within the extracted grid.
        property_name: Sanitized header name (empty for an empty header).
        target_type: Name of the type being built.
    """

    def __init__(
        self,
        message: str,
        column_index: int,
        property_name: str,
        target_type: str,
    ) -> None:
        self.column_index = column_index
        self.property_name = property_name
        self.target_type = target_type

        super().__init__(
            message=message,
            error_code="MAPPING_FAILED",
            details={
                "column_index": column_index,
                "property_name": property_name,
                "target_type": target_type,
            },
        )


class ResourceReleaseError(ExcelHelperError):
    """
    Raised by ExcelReader.close() when one or more release steps failed.

    Every release step is attempted even when an earlier one fails; the
    failures are collected here in the order they happened.

    Attributes:
        errors: List of (step name, exception) pairs.
    """

    def __init__(self, errors: list[tuple[str, BaseException]]) -> None:
        self.errors = errors

        summary = "; ".join(f"{step}: {error}" for step, error in errors)
        super().__init__(
            message=f"Failed to release {len(errors)} resource(s): {summary}",
            error_code="RESOURCE_RELEASE_FAILED",
            details={"steps": [step for step, _ in errors]},
        )
