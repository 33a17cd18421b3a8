"""Generación de Excel formateado con el historial de sesiones."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")


@dataclass(frozen=True)
class _Column:
    key: str
    header: str
    width: int
    number_format: str | None = None


_COLUMNS: tuple[_Column, ...] = (
    _Column("weekday", "Día", 6),
    _Column("id", "Sesión", 8),
    _Column("date", "Fecha / Hora", 18, "dd/mm/yyyy hh:mm"),
    _Column("distance_m", "Distancia (m)", 14, "#,##0.0"),
    _Column("steps", "Pasos", 10, "#,##0"),
    _Column("calories_kcal", "Calorías\n(kcal)", 10, "0.00"),
    _Column("fare", "Tarifa\n(Tk.)", 10, "0"),
)
_COLUMNS_BY_HEADER: dict[str, _Column] = {c.header: c for c in _COLUMNS}


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the history sheet."""

    sheet_name: str = "Historial"


def _weekday_label(i: object) -> str:
    """Convierte índice 0-6 (lunes-domingo) a etiqueta de 3 letras."""
    if i is None or (isinstance(i, float) and pd.isna(i)):
        return ""
    if isinstance(i, int | float):
        idx = int(i)
        return _DIA_SEMANA[idx] if 0 <= idx < 7 else ""
    return ""


def _add_weekday_column(export_df: pd.DataFrame) -> pd.DataFrame:
    """Añade columna weekday (Día) a partir de date."""
    if "date" not in export_df.columns or export_df.empty:
        return export_df
    weekday_series = pd.to_datetime(export_df["date"], errors="coerce").dt.weekday
    export_df = export_df.copy()
    export_df["weekday"] = weekday_series.map(_weekday_label)
    cols = ["weekday"] + [c for c in export_df.columns if c != "weekday"]
    return export_df[cols]


def _strip_timezone(export_df: pd.DataFrame) -> pd.DataFrame:
    """Quita timezone de date (Excel no admite datetimes con tz)."""
    if "date" not in export_df.columns:
        return export_df
    export_df = export_df.copy()
    dates = pd.to_datetime(export_df["date"], errors="coerce")
    if getattr(dates.dt, "tz", None) is not None:
        dates = dates.dt.tz_localize(None)
    export_df["date"] = dates
    return export_df


def write_history_xlsx(df: pd.DataFrame, out_path: Path, layout: ExcelLayout) -> None:
    """Write the session history as a formatted Excel file.

    Args:
        df: History DataFrame (id, date, distance_m, steps, calories_kcal, fare).
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    export_df = _add_weekday_column(df.copy())
    export_df = _strip_timezone(export_df)
    export_df = export_df.rename(columns={c.key: c.header for c in _COLUMNS})

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name=layout.sheet_name)
        ws = writer.book[layout.sheet_name]
        _format_sheet(ws)


def _style_cells(ws: Any) -> None:
    """Bordes finos y centrado; cabecera en negrita con salto de línea."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for row in ws.iter_rows():
        header = row[0].row == 1
        for cell in row:
            cell.border = border
            cell.alignment = Alignment(
                horizontal="center", vertical="center", wrap_text=header
            )
            if header:
                cell.font = Font(bold=True)


def _apply_column_formats(ws: Any) -> None:
    """Ancho y formato numérico para cada cabecera conocida."""
    for header_cell in ws[1]:
        column = _COLUMNS_BY_HEADER.get(str(header_cell.value))
        if column is None:
            continue
        ws.column_dimensions[header_cell.column_letter].width = column.width
        if column.number_format is None:
            continue
        for (cell,) in ws.iter_rows(
            min_row=2, min_col=header_cell.column, max_col=header_cell.column
        ):
            cell.number_format = column.number_format


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to a worksheet.

    Args:
        ws: openpyxl worksheet.
    """
    _style_cells(ws)
    _apply_column_formats(ws)
