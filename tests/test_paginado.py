import pytest

from infra.paginado import traer_todo
from infra.remoto import Consulta, ErrorRemoto


class FuenteFalsa:
    """Tabla en memoria que respeta el corte por página y cuenta pedidos."""

    def __init__(self, n, falla_en_pagina=None):
        self.filas = [{"id": i} for i in range(n)]
        self.pedidos = []
        self.falla_en_pagina = falla_en_pagina

    def obtener_pagina(self, consulta, desde, hasta):
        self.pedidos.append((desde, hasta))
        if self.falla_en_pagina is not None and len(self.pedidos) - 1 == self.falla_en_pagina:
            raise ErrorRemoto("boom", status=500)
        return self.filas[desde:hasta + 1]


CONSULTA = Consulta("financial_movements")


@pytest.mark.parametrize("n,p,esperados", [
    (0, 1000, 1),
    (1, 1000, 1),
    (999, 1000, 1),
    (1000, 1000, 2),
    (2500, 1000, 3),
    (3000, 1000, 4),
    (7, 3, 3),
    (9, 3, 4),
])
def test_cantidad_de_pedidos(n, p, esperados):
    fuente = FuenteFalsa(n)
    filas = traer_todo(fuente, CONSULTA, tam_pagina=p)
    assert len(filas) == n
    assert len(fuente.pedidos) == esperados


def test_rangos_consecutivos_y_orden_preservado():
    fuente = FuenteFalsa(7)
    filas = traer_todo(fuente, CONSULTA, tam_pagina=3)
    assert fuente.pedidos == [(0, 2), (3, 5), (6, 8)]
    assert [f["id"] for f in filas] == list(range(7))


def test_vacio_es_un_solo_pedido():
    fuente = FuenteFalsa(0)
    assert traer_todo(fuente, CONSULTA) == []
    assert fuente.pedidos == [(0, 999)]


def test_error_en_pagina_intermedia_se_propaga():
    """Sin resultados parciales: el error de la 2da página aborta todo."""
    fuente = FuenteFalsa(10, falla_en_pagina=1)
    with pytest.raises(ErrorRemoto):
        traer_todo(fuente, CONSULTA, tam_pagina=3)
    assert len(fuente.pedidos) == 2


def test_no_deduplica():
    class Repetida:
        def obtener_pagina(self, consulta, desde, hasta):
            return [{"id": 1}, {"id": 1}] if desde == 0 else []

    assert traer_todo(Repetida(), CONSULTA, tam_pagina=2) == [{"id": 1}, {"id": 1}]


def test_tam_pagina_invalido():
    with pytest.raises(ValueError):
        traer_todo(FuenteFalsa(1), CONSULTA, tam_pagina=0)
