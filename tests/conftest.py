"""
Test fixtures and utilities for the excel-helper tests.

This module provides shared fixtures including temporary workbook files
generated with XlsxWriter, adapter instances and sample sheet data.
"""

import io
import tempfile
from collections.abc import Callable, Generator
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pytest
import xlsxwriter

from excel_helper.adapters.openpyxl_adapter import OpenpyxlAdapter
from excel_helper.adapters.xlrd_adapter import XlrdAdapter

ORDER_HEADERS = ["Order Date", "Region", "Rep", "Item", "Units", "Unit Cost", "Total"]

ORDER_ROWS = [
    [datetime(2024, 1, 6), "East", "Jones", "Pencil", 95, 1.99, 189.05],
    [datetime(2024, 1, 23), "Central", "Kivell", "Binder", 50, 19.99, 999.5],
    [datetime(2024, 2, 9), "Central", "Jardine", "Pencil", 36, 4.99, 179.64],
    [datetime(2024, 2, 26), "Central", "Gill", "Pen", 27, 19.99, 539.73],
]


def write_workbook(file_path: Path, sheets: dict[str, list[list[Any]]]) -> Path:
    """
    Write a workbook with XlsxWriter, one sheet per dict entry.

    Rows start at A1. None cells are left empty and datetime/date values
    are written as dates so that openpyxl reads them back as datetime.

    Args:
        file_path: Target .xlsx path.
        sheets: Mapping of sheet name to rows.

    Returns:
        The file path.
    """
    workbook = xlsxwriter.Workbook(str(file_path))
    date_format = workbook.add_format({"num_format": "yyyy-mm-dd"})

    for sheet_name, rows in sheets.items():
        worksheet = workbook.add_worksheet(sheet_name)
        for row_idx, row in enumerate(rows):
            for col_idx, value in enumerate(row):
                if value is None:
                    continue
                if isinstance(value, (datetime, date)):
                    worksheet.write_datetime(row_idx, col_idx, value, date_format)
                else:
                    worksheet.write(row_idx, col_idx, value)

    workbook.close()
    return file_path


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to the temporary directory.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_workbook(temp_dir: Path) -> Callable[..., Path]:
    """
    Return a factory writing workbooks into the temporary directory.

    Returns:
        Callable taking a file name and a sheets dict.
    """

    def factory(name: str, sheets: dict[str, list[list[Any]]]) -> Path:
        return write_workbook(temp_dir / name, sheets)

    return factory


@pytest.fixture
def openpyxl_adapter() -> OpenpyxlAdapter:
    """Create an OpenpyxlAdapter instance for testing."""
    return OpenpyxlAdapter()


@pytest.fixture
def xlrd_adapter() -> XlrdAdapter:
    """Create an XlrdAdapter instance for testing."""
    return XlrdAdapter()


@pytest.fixture
def sample_excel_file(make_workbook: Callable[..., Path]) -> Path:
    """
    Create a sample workbook with three sheets.

    - "orders": a title in A1, an empty row, headers in row 3, data below
    - "values": a two-column header and two data rows
    - "numbers": integers with an empty row in between

    Returns:
        Path to the sample Excel file.
    """
    return make_workbook(
        "sample.xlsx",
        {
            "orders": [["Office supplies"], [], ORDER_HEADERS, *ORDER_ROWS],
            "values": [["H1", "H2"], ["a", 1], ["b", None]],
            "numbers": [[1, 2, 3], [None, None, None], [4, 5, 6]],
        },
    )


class NonSeekableStream(io.RawIOBase):
    """Readable stream that refuses to seek, like a socket or a pipe."""

    def __init__(self, data: bytes) -> None:
        super().__init__()
        self._buffer = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, b: bytearray) -> int:
        chunk = self._buffer.read(len(b))
        b[: len(chunk)] = chunk
        return len(chunk)


@pytest.fixture
def non_seekable_stream() -> type[NonSeekableStream]:
    """Return the NonSeekableStream class for building unseekable inputs."""
    return NonSeekableStream
