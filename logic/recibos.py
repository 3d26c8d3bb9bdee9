from __future__ import annotations
from dataclasses import replace
from typing import Any, Iterable, Protocol

from infra.logger import get_logger
from infra.remoto import ErrorRemoto
from logic.modelos import Recibo


TABLA_RECIBOS = "receipts"
CLAVE_RECIBOS = "codigo_lancamento"

log = get_logger()


class Actualizador(Protocol):
    def actualizar(self, tabla: str, valores: dict, columna_clave: str, valor_clave: Any) -> list[dict]:
        ...


def actualizar_estado(
    cliente: Actualizador,
    recibos: list[Recibo],
    codigo: int,
    nuevo_estado: str,
    estados_conocidos: Iterable[str] = (),
) -> list[Recibo]:
    """Cambia el estado de un recibo en el almacén y devuelve la lista local actualizada.

    Si la actualización remota falla, el error se propaga y `recibos` queda
    intacta. No hay reintentos.
    """
    nuevo_estado = (nuevo_estado or "").strip()
    if not nuevo_estado:
        raise ValueError("El estado nuevo no puede estar vacío")
    conocidos = set(estados_conocidos)
    if conocidos and nuevo_estado not in conocidos:
        # El servidor no valida el conjunto; solo se deja constancia
        log.warning("Estado fuera del conjunto conocido: %s", nuevo_estado)

    try:
        cliente.actualizar(TABLA_RECIBOS, {"status": nuevo_estado}, CLAVE_RECIBOS, codigo)
    except ErrorRemoto as e:
        log.error("No se pudo actualizar el recibo %s: %s", codigo, e)
        raise

    log.info("Recibo %s -> %s", codigo, nuevo_estado)
    return [replace(r, estado=nuevo_estado) if r.codigo == codigo else r for r in recibos]


def filtrar_recibos(
    recibos: Iterable[Recibo],
    texto: str = "",
    estado: str | None = None,
    obra: str | None = None,
) -> list[Recibo]:
    """Búsqueda libre en documento/obra/categoría más filtros exactos de estado y obra."""
    texto = (texto or "").strip().lower()
    out: list[Recibo] = []
    for r in recibos:
        if texto and not any(texto in campo.lower() for campo in (r.numero_documento, r.obra, r.categoria)):
            continue
        if estado and r.estado != estado:
            continue
        if obra and r.obra != obra:
            continue
        out.append(r)
    return out


def obras_distintas(recibos: Iterable[Recibo]) -> list[str]:
    return sorted({r.obra for r in recibos if r.obra})


def etiqueta_parcela(r: Recibo) -> str:
    if r.parcelado and r.parcela_actual and r.total_parcelas:
        return f"{r.parcela_actual}/{r.total_parcelas}"
    return "-"
