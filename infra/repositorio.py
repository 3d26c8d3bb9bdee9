"""Consultas del tablero contra el almacén remoto.

Cada función arma la Consulta de una tabla y la drena con `traer_todo`.
Devuelven registros crudos; la conversión a modelos vive en logic.lectura.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable

from infra.logger import get_logger
from infra.paginado import TAM_PAGINA, FuentePaginada, traer_todo
from infra.remoto import Consulta, condicion, condicion_in, grupo_or


log = get_logger()

COLUMNAS_MOVIMIENTO = """
    id,
    title_id,
    invoice_key,
    invoice_number,
    supplier_tax_id,
    supplier_name,
    category_id,
    project_id,
    status,
    is_paid,
    issue_date,
    due_date,
    payment_date,
    original_amount,
    paid_amount,
    net_amount,
    installment_label,
    description,
    title_name,
    payment_type,
    projects:project_id (name),
    categories:category_id (description, standard_description)
"""

COLUMNAS_COMPRA = """
    invoice_key,
    invoice_number,
    invoice_series,
    supplier_tax_id,
    supplier_legal_name,
    issue_date,
    invoice_total_amount,
    project_id,
    purchase_category,
    projects:project_id (name),
    categories:purchase_category (description)
"""

COLUMNAS_ITEM = "invoice_key, item_sequence, product_description, quantity, total_item_value"

_CAMPOS_FECHA = ("issue_date", "due_date", "payment_date")


def consulta_movimientos(
    inicio: date,
    fin: date,
    proyecto_id: str | None = None,
    tipos_pago: Iterable[str] = (),
    incluir: Iterable[str] = (),
) -> Consulta:
    """Pre-filtro amplio: alguna de las tres fechas cae en la ventana.

    La fecha efectiva depende de is_paid y no se puede replicar del lado del
    servidor; el filtro definitivo se aplica después en logic.conciliacion.
    """
    q = Consulta("financial_movements", COLUMNAS_MOVIMIENTO)

    grupos = [
        grupo_or(*(condicion(c, "gte", inicio.isoformat()) for c in _CAMPOS_FECHA)),
        grupo_or(*(condicion(c, "lte", fin.isoformat()) for c in _CAMPOS_FECHA)),
    ]
    tipos = sorted(set(tipos_pago))
    palabras = list(incluir)
    conds_tipo: list[str] = []
    if tipos:
        conds_tipo.append(condicion_in("payment_type", tipos))
    for kw in palabras:
        conds_tipo.append(condicion("invoice_number", "ilike", f"*{kw}*"))
        conds_tipo.append(condicion("description", "ilike", f"*{kw}*"))
    if conds_tipo:
        grupos.append(grupo_or(*conds_tipo))

    q = q.and_(*grupos)
    if proyecto_id:
        q = q.eq("project_id", proyecto_id)
    # "id" desempata para que offset/limit sea estable entre páginas
    return q.order("issue_date", ascendente=False).order("id")


def _en_lotes(claves: list[str], tam: int) -> Iterable[list[str]]:
    for i in range(0, len(claves), tam):
        yield claves[i:i + tam]


def _buscar_por_claves(
    fuente: FuentePaginada,
    base: Consulta,
    claves: Iterable[str],
    tam_pagina: int,
    max_claves: int,
) -> list[dict]:
    claves = list(dict.fromkeys(k for k in claves if k))
    if not claves:
        return []
    filas: list[dict] = []
    for lote in _en_lotes(claves, max(1, max_claves)):
        filas.extend(traer_todo(fuente, base.in_("invoice_key", lote), tam_pagina))
    return filas


def buscar_movimientos(
    fuente: FuentePaginada,
    inicio: date,
    fin: date,
    proyecto_id: str | None = None,
    tipos_pago: Iterable[str] = (),
    incluir: Iterable[str] = (),
    tam_pagina: int = TAM_PAGINA,
) -> list[dict]:
    consulta = consulta_movimientos(inicio, fin, proyecto_id, tipos_pago, incluir)
    filas = traer_todo(fuente, consulta, tam_pagina)
    log.info("Movimientos %s..%s: %d registros", inicio, fin, len(filas))
    return filas


def buscar_compras(
    fuente: FuentePaginada,
    claves: Iterable[str],
    tam_pagina: int = TAM_PAGINA,
    max_claves: int = 200,
) -> list[dict]:
    base = Consulta("purchases", COLUMNAS_COMPRA).order("invoice_key")
    filas = _buscar_por_claves(fuente, base, claves, tam_pagina, max_claves)
    log.info("Notas cruzadas: %d registros", len(filas))
    return filas


def buscar_items(
    fuente: FuentePaginada,
    claves: Iterable[str],
    tam_pagina: int = TAM_PAGINA,
    max_claves: int = 200,
) -> list[dict]:
    base = Consulta("purchase_items", COLUMNAS_ITEM).order("invoice_key").order("item_sequence")
    filas = _buscar_por_claves(fuente, base, claves, tam_pagina, max_claves)
    log.info("Ítems de notas: %d registros", len(filas))
    return filas


def buscar_recibos(
    fuente: FuentePaginada,
    inicio: date,
    fin: date,
    tam_pagina: int = TAM_PAGINA,
) -> list[dict]:
    consulta = (
        Consulta("receipts")
        .gte("data_vencimento", inicio.isoformat())
        .lte("data_vencimento", fin.isoformat())
        .order("data_vencimento")
        .order("codigo_lancamento")
    )
    filas = traer_todo(fuente, consulta, tam_pagina)
    log.info("Recibos %s..%s: %d registros", inicio, fin, len(filas))
    return filas


def buscar_proyectos(fuente: FuentePaginada, tam_pagina: int = TAM_PAGINA) -> list[dict]:
    return traer_todo(fuente, Consulta("projects", "id, name").order("name"), tam_pagina)
