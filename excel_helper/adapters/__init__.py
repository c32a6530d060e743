"""
Adapters for the external spreadsheet decoders.

Wraps openpyxl (zip-based workbooks) and xlrd (legacy binary workbooks)
behind the same open/read/close interface.
"""

from excel_helper.adapters.openpyxl_adapter import OpenpyxlAdapter
from excel_helper.adapters.xlrd_adapter import XlrdAdapter

__all__ = [
    "OpenpyxlAdapter",
    "XlrdAdapter",
]
