from __future__ import annotations
from datetime import date
from typing import Any, Iterable, Literal, Optional

from logic.lectura import a_texto
from logic.modelos import FilaReporte


Direccion = Optional[Literal["asc", "desc"]]

CAMPOS_NUMERICOS = {"importe", "item_secuencia", "item_cantidad"}


def valor_texto(fila: Any, campo: str, formato_fecha: str = "%d/%m/%Y") -> str:
    """Texto de una celda tal como se muestra (fechas en formato local)."""
    valor = getattr(fila, campo, None)
    if valor is None:
        return ""
    if isinstance(valor, date):
        return valor.strftime(formato_fecha)
    return a_texto(valor)


def filtrar(
    filas: Iterable[FilaReporte],
    filtros: dict[str, str],
    formato_fecha: str = "%d/%m/%Y",
) -> list[FilaReporte]:
    """Filtro por columna: subcadena sin distinguir mayúsculas; filtros vacíos no aplican."""
    activos = {c: v.strip().lower() for c, v in filtros.items() if v and v.strip()}
    if not activos:
        return list(filas)
    return [
        f for f in filas
        if all(buscado in valor_texto(f, campo, formato_fecha).lower() for campo, buscado in activos.items())
    ]


def _clave_orden(valor: Any, numerico: bool) -> Any:
    if numerico:
        try:
            return float(valor)
        except (TypeError, ValueError):
            return 0.0
    if isinstance(valor, str):
        return valor.casefold()
    return valor


def ordenar(
    filas: Iterable[FilaReporte],
    campo: str | None,
    direccion: Direccion,
) -> list[FilaReporte]:
    """Orden estable por campo; a igualdad se conserva el orden de entrada.

    Los valores vacíos (None) van siempre al final, en ambas direcciones.
    """
    filas = list(filas)
    if not campo or not direccion:
        return filas
    numerico = campo in CAMPOS_NUMERICOS
    con_valor = [f for f in filas if getattr(f, campo, None) is not None]
    sin_valor = [f for f in filas if getattr(f, campo, None) is None]
    con_valor = sorted(
        con_valor,
        key=lambda f: _clave_orden(getattr(f, campo, None), numerico),
        reverse=(direccion == "desc"),
    )
    return con_valor + sin_valor


def siguiente_orden(
    campo_actual: str | None,
    direccion_actual: Direccion,
    campo: str,
) -> tuple[str | None, Direccion]:
    """Ciclo al hacer clic en un encabezado: asc -> desc -> sin orden."""
    if campo_actual != campo:
        return campo, "asc"
    if direccion_actual == "asc":
        return campo, "desc"
    if direccion_actual == "desc":
        return None, None
    return campo, "asc"
