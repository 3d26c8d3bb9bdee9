from __future__ import annotations

from typing import Protocol

from infra.logger import get_logger
from infra.remoto import Consulta, ErrorRemoto


TAM_PAGINA = 1000

log = get_logger()


class FuentePaginada(Protocol):
    def obtener_pagina(self, consulta: Consulta, desde: int, hasta: int) -> list[dict]:
        ...


def traer_todo(fuente: FuentePaginada, consulta: Consulta, tam_pagina: int = TAM_PAGINA) -> list[dict]:
    """Drena una consulta completa pidiendo rangos [k*P, (k+1)*P - 1] hasta una página corta.

    El backend corta cada respuesta en `tam_pagina` filas; sin drenar, cualquier
    consulta de más filas se trunca sin aviso. Concatena en orden de pedido, sin
    reordenar ni deduplicar. Un error en cualquier página se propaga entero.
    """
    if tam_pagina < 1:
        raise ValueError("tam_pagina debe ser positivo")

    filas: list[dict] = []
    pagina = 0
    while True:
        desde = pagina * tam_pagina
        hasta = desde + tam_pagina - 1
        try:
            lote = fuente.obtener_pagina(consulta, desde, hasta)
        except ErrorRemoto as e:
            log.error("Fallo la página %d de %s: %s", pagina, consulta.tabla, e)
            raise
        log.debug("%s [%d-%d] -> %d filas", consulta.tabla, desde, hasta, len(lote))
        filas.extend(lote)
        if len(lote) < tam_pagina:
            break
        pagina += 1

    return filas
