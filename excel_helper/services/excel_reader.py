"""
ExcelReader session.

This module provides the ExcelReader class, the single entry point of the
library. A reader is bound to one workbook (a file name or a binary
stream), decodes it on first use with the openpyxl or xlrd adapter, and
serves any number of range reads from the decoded sheets until it is
closed.

Example:
    with ExcelReader("/path/to/orders.xlsx") as reader:
        print(reader.worksheet_count, reader.worksheet_names)

        # Raw cells of a sheet, empty rows removed
        values = reader.get_range_cells("values", 1, 1)

        # Every cell converted to int
        numbers = reader.get_typed_range_cells("numbers", int, 1, 1)

        # Objects built from a header row at row 3
        orders = reader.get_range("orders", Order, 1, 3)
"""

import logging
import os
from typing import Any, BinaryIO, TypeVar

from excel_helper.adapters.openpyxl_adapter import OpenpyxlAdapter
from excel_helper.adapters.xlrd_adapter import XlrdAdapter
from excel_helper.exceptions.excel_exceptions import ReadError, ResourceReleaseError
from excel_helper.models.excel_models import (
    ExcelFileFormat,
    ExtractionWindow,
    ReaderOptions,
    WorkbookData,
)
from excel_helper.services.cell_cast import convert_grid
from excel_helper.services.object_mapper import ObjectMapper
from excel_helper.services.range_extractor import build_window, extract_range
from excel_helper.services.stream_resolver import (
    detect_file_format,
    format_from_filename,
    open_file_stream,
    resolve_stream,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExcelReader:
    """
    Reading session over one workbook.

    The workbook is opened and decoded lazily, once, on the first read.
    Worksheets are selected by zero-based index or by exact name. Start
    rows and columns are 1-based; counts of 0 mean "up to the end of the
    sheet".

    The reader owns the file it opens for a file name. For a caller
    supplied stream it only owns (and closes) the stream when
    ``is_stream_owner`` is True; borrowed or non-seekable streams are
    copied into memory first. A seekable stream is always read from its
    first byte, regardless of its position when it is handed over.

    A reader is not safe for concurrent use from several threads.

    Attributes:
        options: Session options used when mapping rows to objects.
        openpyxl_adapter: Decoder for zip-based workbooks.
        xlrd_adapter: Decoder for legacy binary workbooks.
    """

    def __init__(
        self,
        source: str | os.PathLike | BinaryIO,
        file_format: ExcelFileFormat = ExcelFileFormat.UNKNOWN,
        is_stream_owner: bool | None = None,
        options: ReaderOptions | dict | None = None,
        openpyxl_adapter: OpenpyxlAdapter | None = None,
        xlrd_adapter: XlrdAdapter | None = None,
    ) -> None:
        """
        Initialize the ExcelReader.

        Args:
            source: Path of the workbook, or a binary stream with its content.
            file_format: Workbook format. UNKNOWN is resolved from the file
                extension for paths and from the leading bytes for streams.
            is_stream_owner: For streams, whether the reader closes the
                stream on close(). Ignored for paths.
            options: ReaderOptions, or a dict of its fields.
            openpyxl_adapter: Optional OpenpyxlAdapter instance.
            xlrd_adapter: Optional XlrdAdapter instance.
        """
        file_format = ExcelFileFormat(file_format)

        if isinstance(source, (str, os.PathLike)):
            self._filename: str | None = os.fspath(source)
            self._source_stream: BinaryIO | None = None
            self._is_stream_owner = True
            if file_format == ExcelFileFormat.UNKNOWN:
                file_format = format_from_filename(self._filename)
        else:
            self._filename = None
            self._source_stream = source
            self._is_stream_owner = bool(is_stream_owner)

        if isinstance(options, dict):
            options = ReaderOptions(**options)

        self._file_format = file_format
        self.options = options or ReaderOptions()
        self.openpyxl_adapter = openpyxl_adapter or OpenpyxlAdapter()
        self.xlrd_adapter = xlrd_adapter or XlrdAdapter()

        self._internal_stream: BinaryIO | None = None
        self._decoder: OpenpyxlAdapter | XlrdAdapter | None = None
        self._workbook_handle: Any = None
        self._workbook: WorkbookData | None = None
        self._closed = False

    def __enter__(self) -> "ExcelReader":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_type is None:
            self.close()
            return

        # the error raised inside the with block takes precedence
        try:
            self.close()
        except ResourceReleaseError as e:
            logger.warning("Failed to release %s: %s", self.source_name, e)

    @property
    def filename(self) -> str | None:
        """Path of the workbook, or None when reading from a stream."""
        return self._filename

    @property
    def source_name(self) -> str:
        """File name, or a description of the stream, used in errors."""
        if self._filename is not None:
            return self._filename
        return str(getattr(self._source_stream, "name", "<stream>"))

    @property
    def file_format(self) -> ExcelFileFormat:
        """
        Format of the workbook, detected on first access if unknown.

        Raises:
            FormatDetectionError: If the format has to be detected from a
                stream that cannot seek.
        """
        if self._file_format == ExcelFileFormat.UNKNOWN:
            self._file_format = detect_file_format(self._source_stream)
        return self._file_format

    @property
    def worksheet_count(self) -> int:
        """Number of worksheets in the workbook."""
        return len(self.ensure_decoded().sheets)

    @property
    def worksheet_names(self) -> list[str]:
        """Names of the worksheets in workbook order."""
        return self.ensure_decoded().sheet_names

    def ensure_decoded(self) -> WorkbookData:
        """
        Open and decode the workbook unless that already happened.

        Returns:
            The decoded workbook.

        Raises:
            ReadError: If the reader is closed or the workbook cannot be read.
            ExcelFileNotFoundError: If the workbook file does not exist.
            InvalidFileFormatError: If the content is not a readable workbook.
            FormatDetectionError: If the format cannot be detected.
        """
        self._check_open()

        if self._workbook is None:
            file_format = self.file_format
            decoder = self._decoder_for(file_format)
            stream = self._get_internal_stream()

            logger.debug("Decoding %s workbook %s", file_format.value, self.source_name)
            self._workbook_handle = decoder.open_workbook(stream, self.source_name)
            self._decoder = decoder
            self._workbook = decoder.read_workbook(self._workbook_handle, self.source_name)

        return self._workbook

    def get_range_cells(
        self,
        worksheet: int | str,
        start_column: int,
        start_row: int,
        number_of_columns: int = 0,
        number_of_rows: int = 0,
        remove_empty_rows: bool = True,
    ) -> list[list[Any]]:
        """
        Read a rectangular block of raw cell values from a worksheet.

        Args:
            worksheet: Zero-based worksheet index or worksheet name.
            start_column: Column to start at, the first column being 1.
            start_row: Row to start at, the first row being 1.
            number_of_columns: Number of columns to return, padded with None
                past the last column. 0 reads all remaining columns.
            number_of_rows: Number of rows to return, padded with all-None
                rows past the last row. 0 reads all remaining rows.
            remove_empty_rows: Drop rows without any value. Dropped rows are
                not replaced, so fewer than number_of_rows rows may be returned.

        Returns:
            List of rows, each a list of cell values (None for empty cells).

        Raises:
            CellRangeError: If a start position is below 1 or a count is negative.
            SheetNotFoundError: If the worksheet does not exist.
        """
        window = build_window(
            start_column=start_column,
            start_row=start_row,
            number_of_columns=number_of_columns,
            number_of_rows=number_of_rows,
            remove_empty_rows=remove_empty_rows,
        )
        return self._extract(worksheet, window)

    def get_typed_range_cells(
        self,
        worksheet: int | str,
        target_type: type[T],
        start_column: int,
        start_row: int,
        number_of_columns: int = 0,
        number_of_rows: int = 0,
        remove_empty_rows: bool = True,
    ) -> list[list[T | None]]:
        """
        Read a rectangular block of cells converted to target_type.

        Takes the same range arguments as get_range_cells(). Empty cells stay
        None. Legacy binary workbooks report dates as serial numbers; those
        are converted when target_type is datetime or date.

        Raises:
            CellCastError: If any cell cannot be converted.
        """
        cells = self.get_range_cells(
            worksheet,
            start_column,
            start_row,
            number_of_columns,
            number_of_rows,
            remove_empty_rows,
        )
        return convert_grid(cells, target_type, self.file_format)

    def get_range(
        self,
        worksheet: int | str,
        target_type: type[T],
        start_column: int,
        start_row: int,
        number_of_columns: int = 0,
        remove_empty_rows: bool = True,
    ) -> list[T]:
        """
        Read rows into new target_type objects, matching columns by header.

        The first row of the range is the header. Each header cell is
        turned into an identifier (see ReaderOptions) and bound to the
        attribute with an ExcelColumn of that name, or else to the attribute
        of that name, ignoring case. All rows down to the end of the sheet
        are read.

        Args:
            worksheet: Zero-based worksheet index or worksheet name.
            target_type: Class constructible without arguments.
            start_column: Column of the first header cell, the first column being 1.
            start_row: Row of the header, the first row being 1.
            number_of_columns: Number of columns to map, 0 for all remaining.
            remove_empty_rows: Skip rows without any value.

        Returns:
            One object per data row.

        Raises:
            MappingError: If a column cannot be bound to an attribute and
                ReaderOptions.suppress_mapping_errors is False.
            CellCastError: If a value cannot be converted to its attribute type.
        """
        cells = self.get_range_cells(
            worksheet,
            start_column,
            start_row,
            number_of_columns,
            0,
            remove_empty_rows,
        )
        return ObjectMapper(self.options).map_rows(cells, target_type, self.file_format)

    def read_range_cells(
        self,
        worksheet: int | str,
        cell_range: str,
        remove_empty_rows: bool = False,
    ) -> list[list[Any]]:
        """
        Read a block of raw cell values given in A1 notation (e.g. "B3:D10").

        Raises:
            CellRangeError: If the cell range is invalid.
            SheetNotFoundError: If the worksheet does not exist.
        """
        window = ExtractionWindow.from_a1(cell_range, remove_empty_rows=remove_empty_rows)
        return self._extract(worksheet, window)

    def close(self) -> None:
        """
        Release the decoded workbook, the decoder and the owned streams.

        Every release step runs even if an earlier one fails. Calling close()
        more than once is a no-op.

        Raises:
            ResourceReleaseError: If any release step failed.
        """
        if self._closed:
            return
        self._closed = True

        release_steps = [
            ("decoded workbook", self._release_workbook_data),
            ("decoder", self._release_decoder),
            ("internal stream", self._release_internal_stream),
            ("source stream", self._release_source_stream),
        ]

        errors: list[tuple[str, BaseException]] = []
        for step, release in release_steps:
            try:
                release()
            except Exception as e:
                errors.append((step, e))

        if errors:
            raise ResourceReleaseError(errors) from errors[0][1]

    def _extract(self, worksheet: int | str, window: ExtractionWindow) -> list[list[Any]]:
        sheet = self.ensure_decoded().get_sheet(worksheet)
        return extract_range(sheet, window)

    def _check_open(self) -> None:
        if self._closed:
            raise ReadError(
                file_path=self.source_name,
                operation="read",
                reason="reader is closed",
            )

    def _decoder_for(self, file_format: ExcelFileFormat) -> OpenpyxlAdapter | XlrdAdapter:
        if file_format == ExcelFileFormat.BINARY:
            return self.xlrd_adapter
        return self.openpyxl_adapter

    def _get_internal_stream(self) -> BinaryIO:
        if self._internal_stream is None:
            if self._source_stream is None:
                self._internal_stream = open_file_stream(self._filename)
            else:
                resolved = resolve_stream(self._source_stream, self._is_stream_owner)
                self._internal_stream = resolved.stream
        return self._internal_stream

    def _release_workbook_data(self) -> None:
        self._workbook = None

    def _release_decoder(self) -> None:
        decoder, handle = self._decoder, self._workbook_handle
        self._decoder = None
        self._workbook_handle = None
        if decoder is not None and handle is not None:
            decoder.close_workbook(handle)

    def _release_internal_stream(self) -> None:
        stream = self._internal_stream
        self._internal_stream = None
        if stream is not None and stream is not self._source_stream:
            stream.close()

    def _release_source_stream(self) -> None:
        if self._is_stream_owner and self._source_stream is not None:
            self._source_stream.close()
