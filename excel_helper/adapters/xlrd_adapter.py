"""
Xlrd adapter for legacy binary (.xls) workbooks.

This module provides the XlrdAdapter class that wraps xlrd for decoding
BIFF workbooks into a WorkbookData.

xlrd reports date cells as serial numbers (days since the workbook's
epoch). They are kept as numbers here; the cell cast turns them into
datetime values when a date type is requested.
"""

import logging
from typing import Any, BinaryIO

import xlrd
from xlrd.biffh import error_text_from_code
from xlrd.compdoc import CompDocError

from excel_helper.exceptions.excel_exceptions import InvalidFileFormatError, ReadError
from excel_helper.models.excel_models import ExcelFileFormat, SheetData, WorkbookData

logger = logging.getLogger(__name__)


class XlrdAdapter:
    """
    Adapter for decoding legacy binary workbooks with xlrd.

    Attributes:
        SUPPORTED_EXTENSIONS: Tuple of supported file extensions.
        FILE_FORMAT: The ExcelFileFormat this adapter decodes.
    """

    SUPPORTED_EXTENSIONS = (".xls",)
    FILE_FORMAT = ExcelFileFormat.BINARY

    def open_workbook(self, stream: BinaryIO, source_name: str) -> xlrd.book.Book:
        """
        Open a workbook from a seekable binary stream.

        Args:
            stream: Seekable stream; it is rewound and read completely.
            source_name: File name or stream description used in errors.

        Returns:
            xlrd Book opened on demand.

        Raises:
            InvalidFileFormatError: If the content is not a BIFF workbook.
            ReadError: If an unexpected error occurs during opening.
        """
        stream.seek(0)
        try:
            return xlrd.open_workbook(file_contents=stream.read(), on_demand=True)
        except (xlrd.XLRDError, CompDocError) as e:
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

    def read_workbook(self, book: xlrd.book.Book, source_name: str) -> WorkbookData:
        """
        Decode every sheet of an opened book.

        Args:
            book: Book returned by open_workbook().
            source_name: File name or stream description used in errors.

        Returns:
            WorkbookData with one SheetData per sheet.

        Raises:
            ReadError: If a sheet cannot be read.
        """
        sheets: list[SheetData] = []

        for index in range(book.nsheets):
            try:
                sheet = book.sheet_by_index(index)
                rows = [
                    [self._normalize_cell(cell) for cell in sheet.row(row_idx)]
                    for row_idx in range(sheet.nrows)
                ]
                sheets.append(SheetData.from_rows(sheet.name, index, rows))
                book.unload_sheet(index)
            except Exception as e:
                raise ReadError(
                    file_path=source_name,
                    operation=f"read sheet {index} of",
                    reason=str(e),
                ) from e

        logger.debug("Decoded %d sheet(s) from %s", len(sheets), source_name)

        return WorkbookData(file_format=self.FILE_FORMAT, sheets=sheets)

    def close_workbook(self, book: xlrd.book.Book) -> None:
        """Release the resources held by an on-demand xlrd book."""
        book.release_resources()

    def _normalize_cell(self, cell: xlrd.sheet.Cell) -> Any:
        """
        Normalize an xlrd cell to a Python value.

        Args:
            cell: xlrd Cell with ctype and value.

        Returns:
            None for empty cells, bool for boolean cells, the error text for
            error cells, otherwise the number (int when integral) or text.
        """
        ctype = cell.ctype
        value = cell.value

        if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
            return None

        if ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(value)

        if ctype == xlrd.XL_CELL_ERROR:
            return error_text_from_code.get(value, f"#ERR{value}")

        if ctype in (xlrd.XL_CELL_NUMBER, xlrd.XL_CELL_DATE):
            if isinstance(value, float) and value.is_integer():
                return int(value)
            return value

        if value == "":
            return None

        return value
