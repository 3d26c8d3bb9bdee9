from __future__ import annotations
from dataclasses import asdict, fields
from typing import Iterable

import pandas as pd

from infra.config import load_config
from logic.modelos import FilaReporte, Recibo


_CFG = load_config()
_ETIQUETAS_TIPO = _CFG.conciliacion.etiquetas_tipo_pago

COLUMNAS = [f.name for f in fields(FilaReporte)]


def filas_a_dataframe(filas: Iterable[FilaReporte]) -> pd.DataFrame:
    """Convierte filas del reporte a DataFrame con `fecha` como datetime64."""
    df = pd.DataFrame([asdict(f) for f in filas], columns=COLUMNAS)
    df["fecha"] = pd.to_datetime(df["fecha"], errors="coerce")
    df["importe"] = pd.to_numeric(df["importe"], errors="coerce").fillna(0.0)
    return df


def indicadores(df: pd.DataFrame) -> dict[str, float]:
    """Total, cantidad, ticket medio y costo medio mensual del período."""
    total = float(df["importe"].sum()) if not df.empty else 0.0
    cantidad = int(len(df))
    ticket = total / cantidad if cantidad else 0.0

    mensual = 0.0
    if not df.empty:
        con_fecha = df.dropna(subset=["fecha"])
        por_mes = con_fecha.groupby(con_fecha["fecha"].dt.to_period("M"))["importe"].sum()
        mensual = float(por_mes.mean()) if len(por_mes) else total

    return {
        "total": total,
        "cantidad": cantidad,
        "ticket_medio": ticket,
        "promedio_mensual": mensual,
    }


def _total_por(df: pd.DataFrame, columna: str, nombre: str) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=[nombre, "importe"])
    return (
        df.groupby(columna, sort=False)["importe"]
        .sum()
        .rename_axis(nombre)
        .reset_index()
        .sort_values("importe", ascending=False, kind="stable")
        .reset_index(drop=True)
    )


def por_categoria(df: pd.DataFrame, top: int | None = None) -> pd.DataFrame:
    out = _total_por(df, "categoria", "categoria")
    return out.head(top) if top else out


def por_proyecto(df: pd.DataFrame) -> pd.DataFrame:
    return _total_por(df, "proyecto", "proyecto")


def por_tipo_pago(df: pd.DataFrame, etiquetas: dict[str, str] | None = None) -> pd.DataFrame:
    etiquetas = _ETIQUETAS_TIPO if etiquetas is None else etiquetas
    if df.empty:
        return pd.DataFrame(columns=["tipo", "importe"])
    tmp = df.assign(
        tipo=df["tipo_pago"].fillna("").map(lambda t: etiquetas.get(t, t) if t else "Outros")
    )
    return _total_por(tmp, "tipo", "tipo")


def tendencia(df: pd.DataFrame) -> pd.DataFrame:
    """Suma diaria por fecha efectiva, en orden cronológico."""
    if df.empty:
        return pd.DataFrame(columns=["fecha", "importe"])
    return (
        df.dropna(subset=["fecha"])
        .groupby("fecha")["importe"]
        .sum()
        .reset_index()
        .sort_values("fecha")
        .reset_index(drop=True)
    )


def apilado_proyecto_categoria(df: pd.DataFrame) -> pd.DataFrame:
    """Matriz proyecto x categoría, proyectos ordenados por total descendente."""
    if df.empty:
        return pd.DataFrame()
    tabla = df.pivot_table(
        index="proyecto", columns="categoria", values="importe", aggfunc="sum", fill_value=0.0
    )
    tabla["total"] = tabla.sum(axis=1)
    return tabla.sort_values("total", ascending=False, kind="stable")


SIN_DESCRIPCION = "Sem descrição"

COLUMNAS_PRODUCTO = [
    "producto", "proyecto", "categoria", "importe", "cantidad",
    "ocurrencias", "ultima_fecha", "valor_unitario", "notas",
]


def por_producto(df: pd.DataFrame) -> pd.DataFrame:
    """Agrega filas de ítem por producto + proyecto.

    `valor_unitario` es importe / cantidad (0 sin cantidad); `notas` lista las
    claves de nota distintas en orden de aparición.
    """
    if df.empty:
        return pd.DataFrame(columns=COLUMNAS_PRODUCTO)
    tmp = df.assign(
        producto=df["item_descripcion"].fillna("").replace("", SIN_DESCRIPCION),
        cantidad=pd.to_numeric(df["item_cantidad"], errors="coerce").fillna(0.0),
    )
    grupos = tmp.groupby(["producto", "proyecto"], sort=False)
    out = grupos.agg(
        categoria=("categoria", "first"),
        importe=("importe", "sum"),
        cantidad=("cantidad", "sum"),
        ocurrencias=("importe", "size"),
        ultima_fecha=("fecha", "max"),
    )
    out["notas"] = grupos["clave_nota"].apply(lambda s: list(dict.fromkeys(s)))
    out = out.reset_index()
    out["valor_unitario"] = [
        imp / cant if cant > 0 else 0.0 for imp, cant in zip(out["importe"], out["cantidad"])
    ]
    return (
        out[COLUMNAS_PRODUCTO]
        .sort_values("importe", ascending=False, kind="stable")
        .reset_index(drop=True)
    )


def indicadores_pagos(df: pd.DataFrame) -> dict[str, float]:
    """Importe pagado y pendiente según `pagado`."""
    if df.empty:
        return {"pagado": 0.0, "pendiente": 0.0}
    pagado = df["pagado"].astype(bool)
    return {
        "pagado": float(df.loc[pagado, "importe"].sum()),
        "pendiente": float(df.loc[~pagado, "importe"].sum()),
    }


def indicadores_recibos(recibos: Iterable[Recibo], estado_recibido: str | None = None) -> dict[str, float]:
    estado_recibido = estado_recibido or _CFG.conciliacion.estado_recibido
    total = recibido = 0.0
    for r in recibos:
        total += r.valor
        if r.estado == estado_recibido:
            recibido += r.valor
    return {"total": total, "recibido": recibido, "pendiente": total - recibido}
