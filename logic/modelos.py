from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Literal


Profundidad = Literal["movimiento", "nota", "item"]

NO_INFORMADO = "N/A"


@dataclass(frozen=True)
class Movimiento:
    id: str
    fecha_emision: date | None
    fecha_vencimiento: date | None
    fecha_pago: date | None
    pagado: bool
    importe_neto: float | None = None
    importe_original: float | None = None
    importe_pagado: float | None = None
    clave_nota: str | None = None       # invoice_key, enlaza con Compra
    numero_nota: str = ""
    titulo_id: str = ""
    nombre_titulo: str = ""
    nombre_proveedor: str = ""
    cnpj_proveedor: str = ""
    proyecto_id: str | None = None
    proyecto: str = ""                  # nombre embebido (projects.name)
    categoria: str = ""                 # descripción embebida (categories.description)
    estado: str = ""
    cuota: str = ""                     # installment_label, p.ej. "2/5"
    descripcion: str = ""
    tipo_pago: str = ""                 # NFE, NFS, SAL...


@dataclass(frozen=True)
class Compra:
    clave_nota: str
    numero_nota: str = ""
    serie: str = ""
    cnpj_proveedor: str = ""
    razon_social: str = ""
    fecha_emision: date | None = None
    importe_total: float | None = None
    proyecto_id: str | None = None
    proyecto: str = ""
    categoria: str = ""


@dataclass(frozen=True)
class ItemCompra:
    clave_nota: str
    secuencia: int
    descripcion: str
    valor: float
    cantidad: float = 0.0


@dataclass(frozen=True)
class Recibo:
    codigo: int                         # codigo_lancamento (clave primaria)
    numero_documento: str
    tipo_documento: str
    obra: str
    categoria: str
    fecha_vencimiento: date | None
    valor: float
    estado: str
    parcelado: bool = False
    parcela_actual: int | None = None
    total_parcelas: int | None = None


@dataclass(frozen=True)
class FilaReporte:
    id: str
    fecha: date                         # fecha efectiva (criterio de caja)
    nombre: str
    categoria: str
    numero_nota: str
    proyecto: str
    importe: float
    pagado: bool
    estado: str
    cuota: str
    tipo_pago: str
    descripcion: str
    # Campos derivados de la nota (Compra); NO_INFORMADO si no hay cruce
    clave_nota: str = NO_INFORMADO
    razon_social: str = NO_INFORMADO
    cnpj_proveedor: str = NO_INFORMADO
    categoria_nota: str = NO_INFORMADO
    proyecto_nota: str = NO_INFORMADO
    item_secuencia: int | None = None
    item_descripcion: str = ""
    item_cantidad: float | None = None
