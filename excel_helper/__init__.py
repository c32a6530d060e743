"""
excel-helper: read ranges of Excel worksheets as cells or typed objects.

This package reads .xls and .xlsx workbooks and returns rectangular blocks
of cells, cells converted to a requested type, or objects built by
matching a header row to attribute names.

Architecture:
    - openpyxl decodes zip-based (.xlsx/.xlsm) workbooks
    - xlrd decodes legacy binary (.xls) workbooks
    - ExcelReader holds one decoded workbook and serves range reads
"""

from excel_helper.models.excel_models import ExcelFileFormat, ReaderOptions
from excel_helper.services.excel_reader import ExcelReader
from excel_helper.services.object_mapper import ExcelColumn

__version__ = "0.1.0"

__all__ = [
    "ExcelReader",
    "ExcelColumn",
    "ExcelFileFormat",
    "ReaderOptions",
]
