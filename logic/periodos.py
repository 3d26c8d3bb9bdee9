from __future__ import annotations
from datetime import date, timedelta

from logic.lectura import a_fecha


RANGOS = {
    "7": "Últimos 7 días",
    "30": "Últimos 30 días",
    "90": "Últimos 90 días",
    "365": "Últimos 12 meses",
    "thisYear": "Este año",
    "lastYear": "Año anterior",
    "all": "Todo el período",
    "custom": "Personalizado",
}

_SIN_LIMITE = (date(2000, 1, 1), date(2099, 12, 31))


def resolver_periodo(
    rango: str,
    inicio: date | str | None = None,
    fin: date | str | None = None,
    hoy: date | None = None,
) -> tuple[date, date]:
    """Traduce un rango predefinido a la ventana (inicio, fin) inclusiva.

    - "custom": usa `inicio` y `fin` tal cual
    - "thisYear" / "lastYear": año calendario
    - "AAAA": ese año completo
    - "all": 2000-01-01 .. 2099-12-31
    - número N: de hoy - N días hasta hoy
    """
    hoy = hoy or date.today()
    rango = str(rango).strip()

    if rango == "custom":
        d_ini, d_fin = a_fecha(inicio), a_fecha(fin)
        if d_ini is None or d_fin is None:
            raise ValueError("El rango personalizado requiere fecha inicial y final")
        return d_ini, d_fin
    if rango == "thisYear":
        return date(hoy.year, 1, 1), date(hoy.year, 12, 31)
    if rango == "lastYear":
        return date(hoy.year - 1, 1, 1), date(hoy.year - 1, 12, 31)
    if rango == "all":
        return _SIN_LIMITE
    if len(rango) == 4 and rango.isdigit():
        anio = int(rango)
        return date(anio, 1, 1), date(anio, 12, 31)
    if rango.isdigit():
        return hoy - timedelta(days=int(rango)), hoy
    raise ValueError(f"Rango de fechas desconocido: {rango}")
