"""
Openpyxl adapter for zip-based (OpenXML) workbooks.

This module provides the OpenpyxlAdapter class that wraps openpyxl for
decoding .xlsx/.xlsm workbooks into a WorkbookData. Cells are read with
data_only=True, so formula cells return their last cached result and no
formula is evaluated.

Date cells are decoded by openpyxl into datetime values using the
workbook's number formats, so no serial date handling is needed
downstream for this format.

Example:
    adapter = OpenpyxlAdapter()
    with open("/path/to/file.xlsx", "rb") as stream:
        workbook = adapter.open_workbook(stream, "file.xlsx")
        data = adapter.read_workbook(workbook, "file.xlsx")
        adapter.close_workbook(workbook)
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, BinaryIO
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from excel_helper.exceptions.excel_exceptions import InvalidFileFormatError, ReadError
from excel_helper.models.excel_models import ExcelFileFormat, SheetData, WorkbookData

logger = logging.getLogger(__name__)


class OpenpyxlAdapter:
    """
    Adapter for decoding zip-based workbooks with openpyxl.

    The adapter is stateless: the opened openpyxl Workbook is returned to
    the caller, which owns it and hands it back to close_workbook().

    Attributes:
        SUPPORTED_EXTENSIONS: Tuple of supported file extensions.
        FILE_FORMAT: The ExcelFileFormat this adapter decodes.
    """

    SUPPORTED_EXTENSIONS = (".xlsx", ".xlsm")
    FILE_FORMAT = ExcelFileFormat.OPEN_XML

    def __init__(self) -> None:
        """Initialize the OpenpyxlAdapter."""
        pass

    def open_workbook(self, stream: BinaryIO, source_name: str) -> Workbook:
        """
        Open a workbook from a seekable binary stream.

        Args:
            stream: Seekable stream positioned anywhere; it is rewound.
            source_name: File name or stream description used in errors.

        Returns:
            openpyxl Workbook instance.

        Raises:
            InvalidFileFormatError: If the content is not a valid workbook.
            ReadError: If an unexpected error occurs during opening.
        """
        stream.seek(0)
        try:
            return load_workbook(stream, data_only=True)
        except (BadZipFile, InvalidFileException, KeyError) as e:
            raise InvalidFileFormatError(
                file_path=source_name,
                expected_formats=list(self.SUPPORTED_EXTENSIONS),
                reason=str(e),
            ) from e
        except Exception as e:
            raise ReadError(
                file_path=source_name,
                operation="open",
                reason=str(e),
            ) from e

    def read_workbook(self, workbook: Workbook, source_name: str) -> WorkbookData:
        """
        Decode every worksheet of an opened workbook.

        Rows are read from A1 regardless of where the data starts, so that
        row and column numbers match the ones shown by Excel.

        Args:
            workbook: Workbook returned by open_workbook().
            source_name: File name or stream description used in errors.

        Returns:
            WorkbookData with one SheetData per worksheet.

        Raises:
            ReadError: If a worksheet cannot be read.
        """
        sheets: list[SheetData] = []

        for index, worksheet in enumerate(workbook.worksheets):
            try:
                rows = [
                    [self._normalize_cell_value(value) for value in row]
                    for row in worksheet.iter_rows(
                        min_row=1,
                        min_col=1,
                        max_row=worksheet.max_row,
                        max_col=worksheet.max_column,
                        values_only=True,
                    )
                ]
            except Exception as e:
                raise ReadError(
                    file_path=source_name,
                    operation=f"read sheet '{worksheet.title}' of",
                    reason=str(e),
                ) from e

            sheets.append(SheetData.from_rows(worksheet.title, index, rows))

        logger.debug("Decoded %d worksheet(s) from %s", len(sheets), source_name)

        return WorkbookData(file_format=self.FILE_FORMAT, sheets=sheets)

    def close_workbook(self, workbook: Workbook) -> None:
        """Release the openpyxl workbook."""
        workbook.close()

    def _normalize_cell_value(self, value: Any) -> Any:
        """
        Normalize a cell value from openpyxl to Python types.

        Empty cells and empty strings become None; integral floats become int.

        Args:
            value: Raw cell value from openpyxl.

        Returns:
            Normalized Python value.
        """
        if value is None or value == "":
            return None

        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            return value

        if isinstance(value, (str, int, bool, datetime, date, time, timedelta)):
            return value

        return str(value)
