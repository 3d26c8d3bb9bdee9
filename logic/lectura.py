"""Lectura de registros crudos del almacén remoto hacia los modelos del dominio.

Las anomalías de forma (fechas inválidas, importes no numéricos, relaciones
embebidas ausentes) se convierten en None / "" y nunca en excepciones.
"""
from __future__ import annotations

import math
from datetime import date, datetime
from numbers import Integral, Real
from typing import Any, Iterable

import pandas as pd

from logic.modelos import Compra, ItemCompra, Movimiento, Recibo


def a_texto(valor: Any) -> str:
    """Devuelve siempre texto sin sufijos `.0` cuando provienen de números."""
    if valor is None:
        return ""
    if isinstance(valor, str):
        return valor.strip()
    if isinstance(valor, bool):
        return str(valor).lower()
    if isinstance(valor, Integral):
        return str(int(valor))
    if isinstance(valor, Real):
        numero = float(valor)
        if math.isnan(numero):
            return ""
        if math.isfinite(numero) and numero.is_integer():
            return str(int(numero))
        return str(valor)
    return str(valor)


def a_fecha(valor: Any) -> date | None:
    """Normaliza a fecha de calendario; timestamps ISO se truncan a YYYY-MM-DD."""
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    ts = pd.to_datetime(str(valor).strip()[:10], format="%Y-%m-%d", errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def a_importe(valor: Any) -> float | None:
    if valor is None or isinstance(valor, bool):
        return None
    if isinstance(valor, Real):
        numero = float(valor)
        return None if math.isnan(numero) else numero
    numero = pd.to_numeric(str(valor).strip(), errors="coerce")
    if pd.isna(numero):
        return None
    return float(numero)


def _a_bool(valor: Any) -> bool:
    if isinstance(valor, str):
        return valor.strip().lower() in {"true", "t", "1", "sim", "si"}
    return bool(valor)


def _a_entero(valor: Any) -> int | None:
    numero = a_importe(valor)
    return None if numero is None else int(numero)


def _anidado(registro: dict, relacion: str, *campos: str) -> str:
    """Primer campo no vacío de una relación embebida (dict o lista de dicts)."""
    rel = registro.get(relacion)
    if isinstance(rel, list):
        rel = rel[0] if rel else None
    if not isinstance(rel, dict):
        return ""
    for campo in campos:
        texto = a_texto(rel.get(campo))
        if texto:
            return texto
    return ""


def leer_movimiento(reg: dict) -> Movimiento:
    clave = a_texto(reg.get("invoice_key"))
    proyecto_id = a_texto(reg.get("project_id"))
    return Movimiento(
        id=a_texto(reg.get("id")) or a_texto(reg.get("title_id")),
        fecha_emision=a_fecha(reg.get("issue_date")),
        fecha_vencimiento=a_fecha(reg.get("due_date")),
        fecha_pago=a_fecha(reg.get("payment_date")),
        pagado=_a_bool(reg.get("is_paid")),
        importe_neto=a_importe(reg.get("net_amount")),
        importe_original=a_importe(reg.get("original_amount")),
        importe_pagado=a_importe(reg.get("paid_amount")),
        clave_nota=clave or None,
        numero_nota=a_texto(reg.get("invoice_number")),
        titulo_id=a_texto(reg.get("title_id")),
        nombre_titulo=a_texto(reg.get("title_name")),
        nombre_proveedor=a_texto(reg.get("supplier_name")),
        cnpj_proveedor=a_texto(reg.get("supplier_tax_id")),
        proyecto_id=proyecto_id or None,
        proyecto=_anidado(reg, "projects", "name"),
        categoria=_anidado(reg, "categories", "description", "standard_description"),
        estado=a_texto(reg.get("status")),
        cuota=a_texto(reg.get("installment_label")),
        descripcion=a_texto(reg.get("description")),
        tipo_pago=a_texto(reg.get("payment_type")).upper(),
    )


def leer_compra(reg: dict) -> Compra:
    proyecto_id = a_texto(reg.get("project_id"))
    return Compra(
        clave_nota=a_texto(reg.get("invoice_key")),
        numero_nota=a_texto(reg.get("invoice_number")),
        serie=a_texto(reg.get("invoice_series")),
        cnpj_proveedor=a_texto(reg.get("supplier_tax_id")),
        razon_social=a_texto(reg.get("supplier_legal_name")),
        fecha_emision=a_fecha(reg.get("issue_date")),
        importe_total=a_importe(reg.get("invoice_total_amount")),
        proyecto_id=proyecto_id or None,
        proyecto=_anidado(reg, "projects", "name"),
        categoria=_anidado(reg, "categories", "description"),
    )


def leer_item(reg: dict) -> ItemCompra:
    return ItemCompra(
        clave_nota=a_texto(reg.get("invoice_key")),
        secuencia=_a_entero(reg.get("item_sequence")) or 0,
        descripcion=a_texto(reg.get("product_description")),
        valor=a_importe(reg.get("total_item_value")) or 0.0,
        cantidad=a_importe(reg.get("quantity")) or 0.0,
    )


def leer_recibo(reg: dict) -> Recibo:
    return Recibo(
        codigo=_a_entero(reg.get("codigo_lancamento")) or 0,
        numero_documento=a_texto(reg.get("numero_documento")),
        tipo_documento=a_texto(reg.get("tipo_documento")),
        obra=a_texto(reg.get("nome_obra")),
        categoria=a_texto(reg.get("categoria")),
        fecha_vencimiento=a_fecha(reg.get("data_vencimento")),
        valor=a_importe(reg.get("valor_documento")) or 0.0,
        estado=a_texto(reg.get("status")),
        parcelado=_a_bool(reg.get("is_parcelado")),
        parcela_actual=_a_entero(reg.get("parcela_atual")),
        total_parcelas=_a_entero(reg.get("total_parcelas")),
    )


def leer_movimientos(registros: Iterable[dict]) -> list[Movimiento]:
    return [leer_movimiento(r) for r in registros]


def leer_compras(registros: Iterable[dict]) -> list[Compra]:
    # Sin clave no hay forma de cruzar la nota
    return [c for c in (leer_compra(r) for r in registros) if c.clave_nota]


def leer_items(registros: Iterable[dict]) -> list[ItemCompra]:
    return [i for i in (leer_item(r) for r in registros) if i.clave_nota]


def leer_recibos(registros: Iterable[dict]) -> list[Recibo]:
    return [leer_recibo(r) for r in registros]
