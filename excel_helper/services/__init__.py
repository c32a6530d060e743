"""
Service layer of excel-helper.

Contains the range extraction, cell casting and object mapping logic and
the ExcelReader session that ties them to the decoder adapters.
"""

from excel_helper.services.cell_cast import cast_cell, convert_grid
from excel_helper.services.excel_reader import ExcelReader
from excel_helper.services.object_mapper import ExcelColumn, ObjectMapper, sanitize_identifier
from excel_helper.services.range_extractor import build_window, extract_range
from excel_helper.services.stream_resolver import detect_file_format

__all__ = [
    "ExcelReader",
    "ExcelColumn",
    "ObjectMapper",
    "cast_cell",
    "convert_grid",
    "extract_range",
    "build_window",
    "detect_file_format",
    "sanitize_identifier",
]
