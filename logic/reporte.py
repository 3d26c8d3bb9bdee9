from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date

from infra.logger import get_logger
from infra.paginado import TAM_PAGINA, FuentePaginada
from infra.remoto import ErrorRemoto
from infra.repositorio import buscar_compras, buscar_items, buscar_movimientos, buscar_recibos
from logic.conciliacion import Parametros, claves_nota, conciliar, seleccionar
from logic.lectura import leer_compras, leer_items, leer_movimientos, leer_recibos
from logic.modelos import FilaReporte, Recibo


log = get_logger()


@dataclass(frozen=True)
class Resultado:
    generacion: int
    filas: list[FilaReporte] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ControlGeneraciones:
    """Numera cada ejecución; solo la última emitida se considera vigente."""

    def __init__(self) -> None:
        self._actual = 0

    def nueva(self) -> int:
        self._actual += 1
        return self._actual

    def vigente(self, generacion: int) -> bool:
        return generacion == self._actual


def generar_reporte(
    fuente: FuentePaginada,
    params: Parametros,
    tam_pagina: int = TAM_PAGINA,
    max_claves: int = 200,
) -> list[FilaReporte]:
    """Movimientos -> notas -> ítems, en secuencia; cada etapa usa las claves de la anterior.

    Cualquier ErrorRemoto aborta todo el reporte.
    """
    registros = buscar_movimientos(
        fuente,
        params.fecha_inicio,
        params.fecha_fin,
        proyecto_id=params.proyecto_id,
        tipos_pago=params.tipos_pago,
        incluir=params.incluir,
        tam_pagina=tam_pagina,
    )
    movimientos = leer_movimientos(registros)

    # Solo se cruzan las notas de movimientos que sobreviven a la ventana
    claves = claves_nota(m for m, _ in seleccionar(movimientos, params))
    compras, items = [], []
    if claves:
        compras = leer_compras(buscar_compras(fuente, claves, tam_pagina, max_claves))
        if params.profundidad == "item" and compras:
            items = leer_items(
                buscar_items(fuente, [c.clave_nota for c in compras], tam_pagina, max_claves)
            )

    filas = conciliar(movimientos, params, compras, items)
    log.info(
        "Reporte %s..%s (%s): %d movimientos -> %d filas",
        params.fecha_inicio, params.fecha_fin, params.profundidad, len(movimientos), len(filas),
    )
    return filas


def ejecutar(
    fuente: FuentePaginada,
    params: Parametros,
    control: ControlGeneraciones,
    tam_pagina: int = TAM_PAGINA,
    max_claves: int = 200,
) -> Resultado | None:
    """Corre el reporte y lo entrega como Resultado; None si quedó obsoleto.

    Un error remoto se registra y se devuelve como resultado vacío con `error`.
    """
    generacion = control.nueva()
    try:
        filas = generar_reporte(fuente, params, tam_pagina, max_claves)
        resultado = Resultado(generacion=generacion, filas=filas)
    except ErrorRemoto as e:
        log.error("Falló el reporte (generación %d): %s", generacion, e)
        resultado = Resultado(generacion=generacion, error=str(e))

    if not control.vigente(generacion):
        log.info("Resultado de la generación %d descartado por obsoleto", generacion)
        return None
    return resultado


def cargar_recibos(
    fuente: FuentePaginada,
    inicio: date,
    fin: date,
    tam_pagina: int = TAM_PAGINA,
) -> list[Recibo]:
    return leer_recibos(buscar_recibos(fuente, inicio, fin, tam_pagina))
