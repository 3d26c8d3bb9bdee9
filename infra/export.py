from __future__ import annotations
import io
import pandas as pd


FORMATO_MONEDA = '"R$" #,##0.00'


def _aplicar_formato(ws, headers: list, columnas: dict[str, str]) -> None:
    for col_name, fmt in columnas.items():
        if col_name in headers:
            col_idx = headers.index(col_name) + 1
            col_letter = ws.cell(row=1, column=col_idx).column_letter
            for cell in ws[col_letter][1:]:
                cell.number_format = fmt


def dataframe_a_excel_bytes(
    df: pd.DataFrame,
    sheet_name: str = "Relatorio",
    formato_columnas_fecha: dict[str, str] | None = None,
    formato_columnas_moneda: dict[str, str] | None = None,
) -> bytes:
    """
    Exporta un DataFrame a Excel conservando fechas e importes como celdas tipadas.
    `formato_columnas_fecha` / `formato_columnas_moneda`: {nombre_columna: number_format}.
    """
    buff = io.BytesIO()
    with pd.ExcelWriter(buff, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        ws = writer.sheets[sheet_name]
        headers = [c.value for c in ws[1]]
        _aplicar_formato(ws, headers, formato_columnas_fecha or {})
        _aplicar_formato(ws, headers, formato_columnas_moneda or {})
        ws.freeze_panes = "A2"
    return buff.getvalue()
