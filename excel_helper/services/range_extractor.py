"""
Rectangular range extraction from a decoded sheet.

Example:
    window = build_window(start_column=1, start_row=3, number_of_columns=4)
    cells = extract_range(sheet, window)
"""

from typing import Any

from pydantic import ValidationError

from excel_helper.exceptions.excel_exceptions import CellRangeError
from excel_helper.models.excel_models import ExtractionWindow, SheetData


def build_window(
    start_column: int,
    start_row: int,
    number_of_columns: int = 0,
    number_of_rows: int = 0,
    remove_empty_rows: bool = True,
) -> ExtractionWindow:
    """
    Validate caller arguments into an ExtractionWindow.

    Raises:
        CellRangeError: If a start position is below 1 or a count is negative.
    """
    try:
        return ExtractionWindow(
            start_row=start_row,
            start_column=start_column,
            number_of_rows=number_of_rows,
            number_of_columns=number_of_columns,
            remove_empty_rows=remove_empty_rows,
        )
    except ValidationError as e:
        raise CellRangeError(
            cell_range=(
                f"row {start_row}, column {start_column}, "
                f"{number_of_rows} row(s) x {number_of_columns} column(s)"
            ),
            reason="; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
            ),
        ) from e


def extract_range(sheet: SheetData, window: ExtractionWindow) -> list[list[Any]]:
    """
    Read a rectangular window of cells from a sheet.

    A count of 0 in the window means "up to the end of the sheet". Rows are
    padded with None past the sheet's last column. With
    ``remove_empty_rows`` False the result always has exactly the effective
    number of rows and columns, padding with all-None rows where the window
    runs past the sheet. With ``remove_empty_rows`` True every row without a
    value is dropped and nothing is added back.

    Args:
        sheet: Decoded sheet.
        window: Requested window.

    Returns:
        List of rows, each a list of cell values.
    """
    column_count = _effective_count(
        window.number_of_columns, sheet.column_count, window.start_column
    )
    row_count = _effective_count(window.number_of_rows, sheet.row_count, window.start_row)

    first_row = window.start_row - 1
    first_col = window.start_column - 1

    result: list[list[Any]] = []
    for row_idx in range(first_row, first_row + row_count):
        if row_idx < sheet.row_count:
            row = sheet.rows[row_idx][first_col : first_col + column_count]
            row = row + [None] * (column_count - len(row))
            if not window.remove_empty_rows or any(cell is not None for cell in row):
                result.append(row)
        elif not window.remove_empty_rows:
            result.append([None] * column_count)

    if not window.remove_empty_rows:
        while len(result) < window.number_of_rows:
            result.append([None] * column_count)

    return result


def _effective_count(requested: int, available: int, start: int) -> int:
    if requested > 0:
        return requested
    return max(available - start + 1, 0)
