"""
Tests for the ExcelReader session.

Tests the public reading API end to end against generated workbooks, and
the session's stream ownership and release behavior.
"""

import io
import logging
from collections.abc import Generator
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any

import pytest

from excel_helper import ExcelColumn, ExcelFileFormat, ExcelReader, ReaderOptions
from excel_helper.exceptions import (
    ExcelFileNotFoundError,
    FormatDetectionError,
    InvalidFileFormatError,
    MappingError,
    ReadError,
    ResourceReleaseError,
    SheetNotFoundError,
)
from excel_helper.models.excel_models import SheetData, WorkbookData


class Order:
    Order_Date: Annotated[datetime | None, ExcelColumn("OrderDate")] = None
    Region: str | None = None
    Rep: str | None = None
    Item: str | None = None
    Units: int = 0
    UnitCost: float = 0.0
    Total: Decimal | None = None


class Record:
    H1: str | None = None
    H2: int | None = None


class StubDecoder:
    """Decoder stand-in returning a fixed binary workbook."""

    def __init__(self, rows: list[list[Any]], close_error: Exception | None = None) -> None:
        self.rows = rows
        self.close_error = close_error
        self.opened = 0
        self.closed_handles: list[Any] = []

    def open_workbook(self, stream: Any, source_name: str) -> str:
        self.opened += 1
        return "handle"

    def read_workbook(self, handle: str, source_name: str) -> WorkbookData:
        return WorkbookData(
            file_format=ExcelFileFormat.BINARY,
            sheets=[SheetData.from_rows("dates", 0, self.rows)],
        )

    def close_workbook(self, handle: str) -> None:
        self.closed_handles.append(handle)
        if self.close_error is not None:
            raise self.close_error


class FailingCloseStream(io.BytesIO):
    """In-memory stream whose close() fails after closing."""

    def close(self) -> None:
        was_closed = self.closed
        super().close()
        if not was_closed:
            raise OSError("disk went away")


BINARY_CONTENT = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


@pytest.fixture
def reader(sample_excel_file: Path) -> Generator[ExcelReader, None, None]:
    """Create an ExcelReader over the sample workbook."""
    with ExcelReader(sample_excel_file) as excel_reader:
        yield excel_reader


class TestExcelReaderProperties:
    """Tests for workbook level properties."""

    def test_worksheets(self, reader: ExcelReader) -> None:
        """Test the worksheet count and names."""
        assert reader.worksheet_count == 3
        assert reader.worksheet_names == ["orders", "values", "numbers"]

    def test_filename_and_format(self, reader: ExcelReader, sample_excel_file: Path) -> None:
        """Test that a path source reports its name and extension format."""
        assert reader.filename == str(sample_excel_file)
        assert reader.file_format == ExcelFileFormat.OPEN_XML

    def test_options_from_dict(self, sample_excel_file: Path) -> None:
        """Test that options can be passed as a plain dict."""
        excel_reader = ExcelReader(
            sample_excel_file,
            options={"invalid_identifier_replacement": "_", "suppress_mapping_errors": True},
        )

        assert excel_reader.options == ReaderOptions(
            invalid_identifier_replacement="_",
            suppress_mapping_errors=True,
        )

    def test_decodes_once(self) -> None:
        """Test that the workbook is decoded a single time per session."""
        decoder = StubDecoder([[1]])
        excel_reader = ExcelReader(io.BytesIO(BINARY_CONTENT), xlrd_adapter=decoder)

        excel_reader.get_range_cells(0, 1, 1)
        excel_reader.get_range_cells("dates", 1, 1)
        assert excel_reader.worksheet_count == 1

        assert decoder.opened == 1
        assert excel_reader.ensure_decoded() is excel_reader.ensure_decoded()


class TestExcelReaderRanges:
    """Tests for the range reading operations."""

    def test_get_range_cells(self, reader: ExcelReader) -> None:
        """Test reading raw cells with and without empty rows."""
        assert reader.get_range_cells("numbers", 1, 1) == [[1, 2, 3], [4, 5, 6]]
        assert reader.get_range_cells("numbers", 1, 1, remove_empty_rows=False) == [
            [1, 2, 3],
            [None, None, None],
            [4, 5, 6],
        ]

    def test_get_range_cells_by_index(self, reader: ExcelReader) -> None:
        """Test selecting the worksheet by zero-based index."""
        assert reader.get_range_cells(1, 2, 2, 1, 2) == [[1]]
        assert reader.get_range_cells(1, 2, 2, 1, 2, remove_empty_rows=False) == [[1], [None]]

    def test_get_range_cells_padding(self, reader: ExcelReader) -> None:
        """Test that a window past the data keeps the requested shape."""
        cells = reader.get_range_cells("values", 2, 2, 3, 4, remove_empty_rows=False)

        assert cells == [
            [1, None, None],
            [None, None, None],
            [None, None, None],
            [None, None, None],
        ]

    def test_get_typed_range_cells(self, reader: ExcelReader) -> None:
        """Test reading cells converted to a requested type."""
        assert reader.get_typed_range_cells("numbers", str, 1, 1) == [
            ["1", "2", "3"],
            ["4", "5", "6"],
        ]
        assert reader.get_typed_range_cells("orders", date, 1, 4, 1, 2) == [
            [date(2024, 1, 6)],
            [date(2024, 1, 23)],
        ]

    def test_read_range_cells(self, reader: ExcelReader) -> None:
        """Test reading cells given in A1 notation."""
        assert reader.read_range_cells("orders", "B3:C4") == [
            ["Region", "Rep"],
            ["East", "Jones"],
        ]

    def test_unknown_sheet(self, reader: ExcelReader) -> None:
        """Test that an unknown worksheet raises SheetNotFoundError."""
        with pytest.raises(SheetNotFoundError) as exc_info:
            reader.get_range_cells("Orders", 1, 1)

        assert exc_info.value.available_sheets == ["orders", "values", "numbers"]

        with pytest.raises(SheetNotFoundError):
            reader.get_range_cells(3, 1, 1)


class TestExcelReaderObjects:
    """Tests for get_range."""

    def test_maps_header_and_rows(self, reader: ExcelReader) -> None:
        """Test mapping a two-column sheet onto objects."""
        records = reader.get_range("values", Record, 1, 1)

        assert [(r.H1, r.H2) for r in records] == [("a", 1), ("b", None)]

    def test_maps_orders_below_title(self, reader: ExcelReader) -> None:
        """Test mapping rows under a header that starts at row 3."""
        orders = reader.get_range("orders", Order, 1, 3)

        assert len(orders) == 4
        first = orders[0]
        assert first.Order_Date == datetime(2024, 1, 6)
        assert (first.Region, first.Rep, first.Item) == ("East", "Jones", "Pencil")
        assert first.Units == 95
        assert first.UnitCost == pytest.approx(1.99)
        assert first.Total == Decimal("189.05")
        assert [order.Rep for order in orders] == ["Jones", "Kivell", "Jardine", "Gill"]

    def test_number_of_columns_limits_mapping(self, reader: ExcelReader) -> None:
        """Test that only the requested columns are mapped."""
        orders = reader.get_range("orders", Order, 1, 3, number_of_columns=2)

        assert orders[1].Region == "Central"
        assert orders[1].Rep is None

    def test_mapping_errors(self, reader: ExcelReader) -> None:
        """Test that unknown headers fail unless suppressed."""
        with pytest.raises(MappingError):
            reader.get_range("orders", Record, 1, 3)

        reader.options = ReaderOptions(suppress_mapping_errors=True)
        records = reader.get_range("orders", Record, 1, 3)

        assert len(records) == 4

    def test_binary_dates(self) -> None:
        """Test that serial dates of a binary workbook become datetime values."""
        decoder = StubDecoder([["OrderDate", "Units"], [45297, 95], [1, 2]])
        excel_reader = ExcelReader(io.BytesIO(BINARY_CONTENT), xlrd_adapter=decoder)

        orders = excel_reader.get_range("dates", Order, 1, 1)

        assert excel_reader.file_format == ExcelFileFormat.BINARY
        assert orders[0].Order_Date == datetime(2024, 1, 6)
        assert orders[1].Order_Date == datetime(1899, 12, 31)
        assert excel_reader.get_typed_range_cells(0, datetime, 1, 2, 1, 1) == [
            [datetime(2024, 1, 6)]
        ]


class TestExcelReaderStreams:
    """Tests for stream sources and ownership."""

    def test_borrowed_stream(self, sample_excel_file: Path) -> None:
        """Test that a borrowed stream is read but left open."""
        with open(sample_excel_file, "rb") as stream:
            with ExcelReader(stream) as excel_reader:
                assert excel_reader.filename is None
                assert excel_reader.file_format == ExcelFileFormat.OPEN_XML
                assert excel_reader.worksheet_count == 3

            assert not stream.closed

    def test_owned_stream_is_closed(self, sample_excel_file: Path) -> None:
        """Test that an owned stream is closed with the session."""
        stream = io.BytesIO(sample_excel_file.read_bytes())

        with ExcelReader(stream, is_stream_owner=True) as excel_reader:
            assert excel_reader.worksheet_names[0] == "orders"

        assert stream.closed

    def test_non_seekable_stream_needs_format(
        self,
        sample_excel_file: Path,
        non_seekable_stream: type,
    ) -> None:
        """Test that a non-seekable stream cannot be detected but can be read."""
        content = sample_excel_file.read_bytes()

        with pytest.raises(FormatDetectionError):
            ExcelReader(non_seekable_stream(content)).ensure_decoded()

        excel_reader = ExcelReader(non_seekable_stream(content), ExcelFileFormat.OPEN_XML)
        assert excel_reader.get_range_cells("values", 1, 1, 1, 1) == [["H1"]]
        excel_reader.close()

    def test_borrowed_stream_is_read_from_start(self, sample_excel_file: Path) -> None:
        """Test that a stream handed over mid-way is still read from its first byte."""
        stream = io.BytesIO(sample_excel_file.read_bytes())
        stream.seek(100)

        with ExcelReader(stream) as excel_reader:
            assert excel_reader.get_range_cells("values", 1, 1, 1, 1) == [["H1"]]

    def test_any_file_extension(self, sample_excel_file: Path, temp_dir: Path) -> None:
        """Test that a workbook saved under a foreign extension can be read."""
        file_path = temp_dir / "upload.tmp"
        file_path.write_bytes(sample_excel_file.read_bytes())

        with ExcelReader(file_path, ExcelFileFormat.OPEN_XML) as excel_reader:
            assert excel_reader.get_range_cells("values", 1, 1) == [
                ["H1", "H2"],
                ["a", 1],
                ["b", None],
            ]

        with ExcelReader(file_path) as excel_reader:
            assert excel_reader.file_format == ExcelFileFormat.OPEN_XML
            assert excel_reader.worksheet_count == 3

    def test_non_workbook_file_fails_when_decoded(self, temp_dir: Path) -> None:
        """Test that a file that is not a workbook is refused by the decoder."""
        file_path = temp_dir / "data.csv"
        file_path.write_text("a,b\n1,2\n")
        excel_reader = ExcelReader(file_path)

        with pytest.raises(InvalidFileFormatError) as exc_info:
            excel_reader.ensure_decoded()

        assert exc_info.value.file_path == str(file_path)
        excel_reader.close()

    def test_missing_file(self, temp_dir: Path) -> None:
        """Test that a missing file is reported on first read."""
        excel_reader = ExcelReader(temp_dir / "missing.xlsx")

        with pytest.raises(ExcelFileNotFoundError):
            excel_reader.ensure_decoded()

    def test_debug_logging(self, sample_excel_file: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Test that decoding is logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="excel_helper"):
            with ExcelReader(sample_excel_file) as excel_reader:
                excel_reader.ensure_decoded()

        assert any("Decoding open_xml workbook" in message for message in caplog.messages)


class TestExcelReaderClose:
    """Tests for releasing session resources."""

    def test_use_after_close(self, sample_excel_file: Path) -> None:
        """Test that reading from a closed session raises ReadError."""
        excel_reader = ExcelReader(sample_excel_file)
        excel_reader.ensure_decoded()
        excel_reader.close()

        with pytest.raises(ReadError) as exc_info:
            excel_reader.get_range_cells(0, 1, 1)

        assert "reader is closed" in exc_info.value.message

    def test_close_is_idempotent(self) -> None:
        """Test that closing twice releases resources once."""
        decoder = StubDecoder([[1]])
        excel_reader = ExcelReader(io.BytesIO(BINARY_CONTENT), xlrd_adapter=decoder)
        excel_reader.ensure_decoded()

        excel_reader.close()
        excel_reader.close()

        assert decoder.closed_handles == ["handle"]

    def test_close_without_reading(self) -> None:
        """Test that an owned stream is closed even if nothing was read."""
        stream = io.BytesIO(BINARY_CONTENT)

        ExcelReader(stream, is_stream_owner=True).close()

        assert stream.closed

    def test_release_failures_are_aggregated(self) -> None:
        """Test that every release step runs and all failures are reported."""
        decoder = StubDecoder([[1]], close_error=RuntimeError("handle leaked"))
        stream = FailingCloseStream(BINARY_CONTENT)
        excel_reader = ExcelReader(stream, is_stream_owner=True, xlrd_adapter=decoder)
        excel_reader.ensure_decoded()

        with pytest.raises(ResourceReleaseError) as exc_info:
            excel_reader.close()

        error = exc_info.value
        assert [step for step, _ in error.errors] == ["decoder", "source stream"]
        assert error.error_code == "RESOURCE_RELEASE_FAILED"
        assert isinstance(error.__cause__, RuntimeError)
        assert stream.closed

    def test_release_failure_after_clean_with_block(self) -> None:
        """Test that leaving a with block normally reports release failures."""
        decoder = StubDecoder([[1]], close_error=RuntimeError("handle leaked"))

        with pytest.raises(ResourceReleaseError):
            with ExcelReader(io.BytesIO(BINARY_CONTENT), xlrd_adapter=decoder) as excel_reader:
                excel_reader.ensure_decoded()

    def test_release_failure_keeps_with_block_error(
        self,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that an error inside the with block is not replaced by a release failure."""
        decoder = StubDecoder([[1]], close_error=RuntimeError("handle leaked"))

        with caplog.at_level(logging.WARNING, logger="excel_helper"):
            with pytest.raises(SheetNotFoundError):
                with ExcelReader(io.BytesIO(BINARY_CONTENT), xlrd_adapter=decoder) as excel_reader:
                    excel_reader.get_range_cells("missing", 1, 1)

        assert decoder.closed_handles == ["handle"]
        assert any("handle leaked" in message for message in caplog.messages)
