from __future__ import annotations
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from logic.lectura import a_fecha
from logic.modelos import (
    NO_INFORMADO,
    Compra,
    FilaReporte,
    ItemCompra,
    Movimiento,
    Profundidad,
)


ESTADO_PAGADO = "PAGO"
ESTADO_ABIERTO = "EM ABERTO"

_PROFUNDIDADES = ("movimiento", "nota", "item")


@dataclass(frozen=True)
class Parametros:
    """Configuración de una vista: ventana de fechas (inclusiva) y filtros.

    Acepta fechas como `date` o texto ISO `YYYY-MM-DD`; las listas se
    normalizan a tuplas para que los parámetros sigan siendo hashables.
    """
    fecha_inicio: date
    fecha_fin: date
    proyecto_id: str | None = None
    tipos_pago: frozenset[str] = frozenset()
    incluir: tuple[str, ...] = ()
    excluir: tuple[str, ...] = ()
    profundidad: Profundidad = "movimiento"

    def __post_init__(self):
        inicio, fin = a_fecha(self.fecha_inicio), a_fecha(self.fecha_fin)
        if inicio is None or fin is None:
            raise ValueError(f"Ventana de fechas inválida: {self.fecha_inicio!r} - {self.fecha_fin!r}")
        if inicio > fin:
            raise ValueError(f"La fecha inicial {inicio} es posterior a la final {fin}")
        if self.profundidad not in _PROFUNDIDADES:
            raise ValueError(f"Profundidad desconocida: {self.profundidad}")
        object.__setattr__(self, "fecha_inicio", inicio)
        object.__setattr__(self, "fecha_fin", fin)
        object.__setattr__(self, "proyecto_id", str(self.proyecto_id) if self.proyecto_id else None)
        object.__setattr__(self, "tipos_pago", frozenset(t.strip().upper() for t in self.tipos_pago if t))
        object.__setattr__(self, "incluir", tuple(k.strip().lower() for k in self.incluir if k and k.strip()))
        object.__setattr__(self, "excluir", tuple(k.strip().lower() for k in self.excluir if k and k.strip()))


def fecha_efectiva(
    pagado: bool,
    fecha_pago: date | None,
    fecha_vencimiento: date | None,
    fecha_emision: date | None,
) -> date | None:
    """Fecha de caja: pago si está pagado, si no vencimiento; emisión como último recurso."""
    if pagado:
        fecha = fecha_pago or fecha_vencimiento
    else:
        fecha = fecha_vencimiento or fecha_emision
    return fecha or fecha_emision


def fecha_efectiva_de(m: Movimiento) -> date | None:
    return fecha_efectiva(m.pagado, m.fecha_pago, m.fecha_vencimiento, m.fecha_emision)


def importe_visible(m: Movimiento) -> float:
    """Neto, luego original, luego pagado; el primero no nulo. Nunca None."""
    for valor in (m.importe_neto, m.importe_original, m.importe_pagado):
        if valor is not None:
            return float(valor)
    return 0.0


def nombre_visible(m: Movimiento, compra: Compra | None = None) -> str:
    if m.nombre_titulo:
        return m.nombre_titulo
    if m.nombre_proveedor:
        return m.nombre_proveedor
    if compra is not None and compra.razon_social:
        return compra.razon_social
    if m.descripcion:
        return m.descripcion
    ref = m.numero_nota or m.titulo_id or m.id
    if not ref:
        return NO_INFORMADO
    return f"Título: {ref} ({m.cuota})" if m.cuota else f"Título: {ref}"


def _texto_busqueda(m: Movimiento) -> str:
    return f"{m.numero_nota} {m.descripcion} {m.tipo_pago} {m.nombre_proveedor} {m.nombre_titulo}".lower()


def _pasa_tipo(m: Movimiento, params: Parametros) -> bool:
    """Mismo OR que el pre-filtro remoto: tipo en el conjunto o palabra incluida."""
    if not params.tipos_pago and not params.incluir:
        return True
    if m.tipo_pago in params.tipos_pago:
        return True
    numero, desc = m.numero_nota.lower(), m.descripcion.lower()
    return any(kw in numero or kw in desc for kw in params.incluir)


def _excluido(m: Movimiento, params: Parametros) -> bool:
    if not params.excluir:
        return False
    texto = _texto_busqueda(m)
    return any(kw in texto for kw in params.excluir)


def seleccionar(
    movimientos: Iterable[Movimiento],
    params: Parametros,
) -> list[tuple[Movimiento, date]]:
    """Aplica la ventana por fecha efectiva y los filtros de proyecto, tipo y palabras.

    Devuelve pares (movimiento, fecha efectiva) en el orden de entrada.
    """
    out: list[tuple[Movimiento, date]] = []
    for m in movimientos:
        fecha = fecha_efectiva_de(m)
        if fecha is None or fecha < params.fecha_inicio or fecha > params.fecha_fin:
            continue
        if params.proyecto_id and m.proyecto_id != params.proyecto_id:
            continue
        if not _pasa_tipo(m, params):
            continue
        if _excluido(m, params):
            continue
        out.append((m, fecha))
    return out


def claves_nota(movimientos: Iterable[Movimiento]) -> list[str]:
    """Claves de nota distintas, en orden de aparición, para las búsquedas `in`."""
    vistas: dict[str, None] = {}
    for m in movimientos:
        if m.clave_nota:
            vistas.setdefault(m.clave_nota, None)
    return list(vistas)


def _o_na(*valores: str) -> str:
    for v in valores:
        if v:
            return v
    return NO_INFORMADO


def _estado(m: Movimiento) -> str:
    return m.estado or (ESTADO_PAGADO if m.pagado else ESTADO_ABIERTO)


def _fila_movimiento(m: Movimiento, fecha: date, compra: Compra | None) -> FilaReporte:
    return FilaReporte(
        id=m.id,
        fecha=fecha,
        nombre=nombre_visible(m, compra),
        categoria=_o_na(m.categoria, compra.categoria if compra else ""),
        numero_nota=_o_na(m.numero_nota, compra.numero_nota if compra else ""),
        proyecto=_o_na(m.proyecto, compra.proyecto if compra else ""),
        importe=importe_visible(m),
        pagado=m.pagado,
        estado=_estado(m),
        cuota=m.cuota,
        tipo_pago=m.tipo_pago,
        descripcion=m.descripcion,
        clave_nota=_o_na(m.clave_nota or ""),
        razon_social=_o_na(compra.razon_social if compra else ""),
        cnpj_proveedor=_o_na(compra.cnpj_proveedor if compra else ""),
        categoria_nota=_o_na(compra.categoria if compra else ""),
        proyecto_nota=_o_na(compra.proyecto if compra else ""),
    )


def _agrupar_por_nota(
    seleccion: list[tuple[Movimiento, date]],
    compras: dict[str, Compra],
) -> "OrderedDict[str, list[tuple[Movimiento, date]]]":
    """Agrupa cuotas por nota; las que no cruzan con una Compra se descartan."""
    grupos: OrderedDict[str, list[tuple[Movimiento, date]]] = OrderedDict()
    for m, fecha in seleccion:
        if not m.clave_nota or m.clave_nota not in compras:
            continue
        grupos.setdefault(m.clave_nota, []).append((m, fecha))
    return grupos


def _fila_grupo(
    clave: str,
    grupo: list[tuple[Movimiento, date]],
    compra: Compra,
    importe: float,
    item: ItemCompra | None = None,
) -> FilaReporte:
    primero = grupo[0][0]
    pagado = any(m.pagado for m, _ in grupo)
    cuotas = list(OrderedDict.fromkeys(m.cuota for m, _ in grupo if m.cuota))
    return FilaReporte(
        id=f"{clave}-{item.secuencia}" if item else clave,
        fecha=max(f for _, f in grupo),
        nombre=nombre_visible(primero, compra),
        categoria=_o_na(primero.categoria, compra.categoria),
        numero_nota=_o_na(compra.numero_nota, primero.numero_nota),
        proyecto=_o_na(primero.proyecto, compra.proyecto),
        importe=importe,
        pagado=pagado,
        estado=ESTADO_PAGADO if pagado else ESTADO_ABIERTO,
        cuota=", ".join(cuotas),
        tipo_pago=primero.tipo_pago,
        descripcion=primero.descripcion,
        clave_nota=clave,
        razon_social=_o_na(compra.razon_social),
        cnpj_proveedor=_o_na(compra.cnpj_proveedor),
        categoria_nota=_o_na(compra.categoria),
        proyecto_nota=_o_na(compra.proyecto),
        item_secuencia=item.secuencia if item else None,
        item_descripcion=item.descripcion if item else "",
        item_cantidad=item.cantidad if item else None,
    )


def conciliar(
    movimientos: Iterable[Movimiento],
    params: Parametros,
    compras: Iterable[Compra] = (),
    items: Iterable[ItemCompra] = (),
) -> list[FilaReporte]:
    """Une movimientos, notas e ítems en filas planas por criterio de caja.

    - "movimiento": una fila por movimiento; la nota, si cruza, aporta cabecera.
    - "nota": una fila por nota (inner join), cuotas consolidadas.
    - "item": una fila por ítem de la nota (inner join), con el estado del grupo.
    """
    seleccion = seleccionar(movimientos, params)
    idx_compras = {c.clave_nota: c for c in compras}

    if params.profundidad == "movimiento":
        return [
            _fila_movimiento(m, fecha, idx_compras.get(m.clave_nota) if m.clave_nota else None)
            for m, fecha in seleccion
        ]

    grupos = _agrupar_por_nota(seleccion, idx_compras)

    if params.profundidad == "nota":
        out: list[FilaReporte] = []
        for clave, grupo in grupos.items():
            compra = idx_compras[clave]
            total = sum(importe_visible(m) for m, _ in grupo)
            if not total and compra.importe_total is not None:
                total = compra.importe_total
            out.append(_fila_grupo(clave, grupo, compra, total))
        return out

    items_por_nota: dict[str, list[ItemCompra]] = {}
    for it in items:
        items_por_nota.setdefault(it.clave_nota, []).append(it)

    out = []
    for clave, grupo in grupos.items():
        compra = idx_compras[clave]
        for it in items_por_nota.get(clave, []):
            out.append(_fila_grupo(clave, grupo, compra, it.valor, item=it))
    return out
