from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from loguru import logger
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from poker_tracker.core.errors import ImportFormatError
from poker_tracker.core.export import RAW_COLUMN, ExportTable

SHEET_TITLE = "Sessions"
OFF_DAY_FILL = PatternFill(fill_type="solid", fgColor="FFE3EA")
CENTER = Alignment(horizontal="center", vertical="center")


def _append(ws, values: list) -> tuple:
    ws.append(values)
    cells = ws[ws.max_row]
    for cell in cells:
        # текст користувача лишається текстом, навіть якщо починається з "="
        if isinstance(cell.value, str):
            cell.data_type = "s"
    return cells


def write_table(table: ExportTable, path: str | Path) -> Path:
    """Записує таблицю в .xlsx: заголовок, дані, (порожній рядок + підсумки)."""
    path = Path(path)
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    keys = table.keys
    _append(ws, [f"  {h}  " if k != RAW_COLUMN else h for k, h in zip(keys, table.headers)])
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = CENTER

    for row in table.rows:
        for cell in _append(ws, [row.get(k, "") for k in keys]):
            cell.alignment = CENTER

    # вихідні: заливка і злиття всіх колонок, крім дати
    visible = len(table.columns)
    for idx in table.off_day_rows:
        row_no = idx + 2
        for col in range(2, visible + 1):
            ws.cell(row=row_no, column=col).fill = OFF_DAY_FILL
        if visible > 2:
            ws.merge_cells(start_row=row_no, start_column=2, end_row=row_no, end_column=visible)

    if table.totals_rows:
        ws.append([])
        totals, description = table.totals_rows
        for cell in _append(ws, [totals.get(k, "") for k in keys[:-1]]):
            cell.font = Font(bold=True)
            cell.alignment = CENTER
        for cell in _append(ws, [description.get(k, "") for k in keys[:-1]]):
            cell.font = Font(italic=True, color="FF666666")
            cell.alignment = CENTER

    # ширина колонок по найдовшому значенню
    for col_idx, key in enumerate(keys, start=1):
        letter = get_column_letter(col_idx)
        if key == RAW_COLUMN:
            ws.column_dimensions[letter].width = 10
            ws.column_dimensions[letter].hidden = True
            continue
        width = len(table.headers[col_idx - 1])
        for row in table.rows:
            value = row.get(key)
            if value not in (None, ""):
                width = max(width, len(str(value)))
        ws.column_dimensions[letter].width = width + 4

    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    logger.info(f"[spreadsheet] Exported {len(table.rows)} row(s) to {path}")
    return path


def read_rows(path: str | Path) -> List[Dict[str, Any]]:
    """Перший аркуш -> список словників {заголовок: значення}."""
    try:
        wb = load_workbook(Path(path), read_only=True, data_only=True)
    except Exception as e:
        raise ImportFormatError(f"Cannot open workbook {path}: {e}") from e

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return []

        names = [str(h).strip() if h is not None else "" for h in header]
        result: List[Dict[str, Any]] = []
        for values in rows:
            if values is None or all(v is None for v in values):
                continue
            result.append({n: v for n, v in zip(names, values) if n})
        return result
    finally:
        wb.close()
