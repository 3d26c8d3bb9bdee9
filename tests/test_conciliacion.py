from datetime import date

import pytest

from logic.conciliacion import (
    ESTADO_ABIERTO,
    ESTADO_PAGADO,
    Parametros,
    claves_nota,
    conciliar,
    fecha_efectiva,
    importe_visible,
    nombre_visible,
)
from logic.lectura import leer_compra, leer_item, leer_movimiento
from logic.modelos import NO_INFORMADO


def mov(**kw):
    base = {"id": 1, "is_paid": False, "issue_date": "2024-03-10"}
    base.update(kw)
    return leer_movimiento(base)


MARZO = Parametros("2024-03-01", "2024-03-31")


def test_fecha_efectiva_pagado_usa_pago():
    assert fecha_efectiva(True, date(2024, 3, 5), date(2024, 3, 1), date(2024, 2, 20)) == date(2024, 3, 5)


def test_fecha_efectiva_pagado_sin_pago_usa_vencimiento():
    assert fecha_efectiva(True, None, date(2024, 3, 1), date(2024, 2, 20)) == date(2024, 3, 1)


def test_fecha_efectiva_abierto_ignora_fecha_de_pago():
    assert fecha_efectiva(False, date(2024, 3, 5), date(2024, 4, 1), date(2024, 2, 20)) == date(2024, 4, 1)


def test_fecha_efectiva_cae_en_emision():
    assert fecha_efectiva(True, None, None, date(2024, 2, 20)) == date(2024, 2, 20)
    assert fecha_efectiva(False, None, None, date(2024, 2, 20)) == date(2024, 2, 20)
    assert fecha_efectiva(False, None, None, None) is None


def test_fecha_efectiva_es_pura():
    args = (True, date(2024, 3, 5), None, date(2024, 1, 1))
    assert fecha_efectiva(*args) == fecha_efectiva(*args)


def test_escenario_pagado_en_marzo_incluido():
    m = mov(is_paid=True, payment_date="2024-03-05", due_date="2024-03-01", issue_date="2024-02-20", net_amount=100)
    filas = conciliar([m], MARZO)
    assert len(filas) == 1
    assert filas[0].fecha == date(2024, 3, 5)
    assert filas[0].importe == 100


def test_escenario_pagado_en_marzo_excluido_de_febrero():
    """La fecha de emisión cae en febrero pero manda la de pago."""
    m = mov(is_paid=True, payment_date="2024-03-05", due_date="2024-03-01", issue_date="2024-02-20", net_amount=100)
    assert conciliar([m], Parametros("2024-02-01", "2024-02-28")) == []


def test_fuera_de_ventana_aunque_alguna_fecha_cruda_caiga_dentro():
    # abierto: manda el vencimiento (abril), aunque emisión y pago estén en marzo
    m = mov(is_paid=False, issue_date="2024-03-02", payment_date="2024-03-03", due_date="2024-04-10")
    assert conciliar([m], MARZO) == []


def test_bordes_de_ventana_inclusivos():
    a = mov(id=1, due_date="2024-03-01")
    b = mov(id=2, due_date="2024-03-31")
    assert [f.id for f in conciliar([a, b], MARZO)] == ["1", "2"]


def test_timestamps_se_truncan():
    m = mov(is_paid=True, payment_date="2024-03-05T13:45:00+00:00")
    assert conciliar([m], MARZO)[0].fecha == date(2024, 3, 5)


def test_sin_nota_una_fila_con_na():
    m = mov(due_date="2024-03-15", net_amount=50, title_name="Aluguel", installment_label="1/3")
    filas = conciliar([m], MARZO)
    assert len(filas) == 1
    f = filas[0]
    assert f.nombre == "Aluguel"
    assert f.cuota == "1/3"
    assert f.importe == 50
    for campo in ("clave_nota", "razon_social", "cnpj_proveedor", "categoria_nota", "proyecto_nota"):
        assert getattr(f, campo) == NO_INFORMADO
    assert f.categoria == NO_INFORMADO
    assert f.proyecto == NO_INFORMADO


def test_importe_primero_no_nulo():
    m = mov(net_amount=None, original_amount=150, paid_amount=200)
    assert importe_visible(m) == 150


def test_importe_nunca_nulo():
    assert importe_visible(mov()) == 0.0
    assert importe_visible(mov(net_amount="abc", paid_amount="12.5")) == 12.5


def test_nombre_visible_orden():
    assert nombre_visible(mov(title_name="T", supplier_name="S")) == "T"
    assert nombre_visible(mov(supplier_name="S", description="D")) == "S"
    assert nombre_visible(mov(description="D")) == "D"
    assert nombre_visible(mov(invoice_number="123", installment_label="2/5")) == "Título: 123 (2/5)"
    assert nombre_visible(mov(id=None)) == NO_INFORMADO


def test_nombre_visible_usa_razon_social_de_la_nota():
    compra = leer_compra({"invoice_key": "K1", "supplier_legal_name": "Cimento SA"})
    assert nombre_visible(mov(description="D"), compra) == "Cimento SA"


def test_excluir_por_palabra_clave():
    m = mov(due_date="2024-03-15", description="Reembolso de despesas")
    assert conciliar([m], Parametros("2024-03-01", "2024-03-31", excluir=("reembolso",))) == []


def test_excluir_mira_titulo_y_tipo():
    m = mov(due_date="2024-03-15", title_name="FERIAS Joao", payment_type="fer")
    assert conciliar([m], Parametros("2024-03-01", "2024-03-31", excluir=["joao"])) == []


def test_tipos_o_palabras_incluidas():
    sal = mov(id=1, due_date="2024-03-10", payment_type="SAL")
    nfe = mov(id=2, due_date="2024-03-10", payment_type="NFE")
    otro = mov(id=3, due_date="2024-03-10", payment_type="BOL", description="Pagamento salario março")
    params = Parametros("2024-03-01", "2024-03-31", tipos_pago=["SAL", "13S", "FER"], incluir=["SALARIO"])
    assert [f.id for f in conciliar([sal, nfe, otro], params)] == ["1", "3"]


def test_filtro_de_proyecto():
    a = mov(id=1, due_date="2024-03-10", project_id=7)
    b = mov(id=2, due_date="2024-03-10", project_id=8)
    params = Parametros("2024-03-01", "2024-03-31", proyecto_id="7")
    assert [f.id for f in conciliar([a, b], params)] == ["1"]


def test_cabecera_de_nota_se_adjunta():
    m = mov(due_date="2024-03-10", invoice_key="K1", net_amount=10,
            projects={"name": "Obra Centro"})
    compra = leer_compra({
        "invoice_key": "K1", "invoice_number": "555", "supplier_legal_name": "Aço Ltda",
        "supplier_tax_id": "12.345.678/0001-90", "categories": {"description": "Materiais"},
        "projects": {"name": "Obra Norte"},
    })
    f = conciliar([m], MARZO, compras=[compra])[0]
    assert f.razon_social == "Aço Ltda"
    assert f.categoria == "Materiais"
    assert f.categoria_nota == "Materiais"
    assert f.numero_nota == "555"
    # el proyecto propio del movimiento tiene prioridad sobre el de la nota
    assert f.proyecto == "Obra Centro"
    assert f.proyecto_nota == "Obra Norte"


def test_nota_inexistente_pasa_con_na():
    m = mov(due_date="2024-03-10", invoice_key="K404")
    f = conciliar([m], MARZO, compras=[])[0]
    assert f.clave_nota == "K404"
    assert f.razon_social == NO_INFORMADO


def test_profundidad_item_una_fila_por_item():
    cuotas = [
        mov(id=1, due_date="2024-03-10", invoice_key="K1", is_paid=True, payment_date="2024-03-12", installment_label="1/2"),
        mov(id=2, due_date="2024-03-20", invoice_key="K1", installment_label="2/2"),
    ]
    compra = leer_compra({"invoice_key": "K1", "invoice_number": "9", "supplier_legal_name": "Aço Ltda"})
    items = [
        leer_item({"invoice_key": "K1", "item_sequence": 1, "product_description": "Vergalhão", "total_item_value": 300}),
        leer_item({"invoice_key": "K1", "item_sequence": 2, "product_description": "Arame", "total_item_value": "45.5", "quantity": "3"}),
    ]
    params = Parametros("2024-03-01", "2024-03-31", profundidad="item")

    filas = conciliar(cuotas, params, compras=[compra], items=items)

    assert [f.id for f in filas] == ["K1-1", "K1-2"]
    assert [f.importe for f in filas] == [300, 45.5]
    assert all(f.pagado and f.estado == ESTADO_PAGADO for f in filas)
    assert filas[0].fecha == date(2024, 3, 20)
    assert filas[0].cuota == "1/2, 2/2"
    assert filas[1].item_descripcion == "Arame"
    assert filas[1].item_cantidad == 3.0
    assert filas[0].item_cantidad == 0.0


def test_profundidad_item_es_inner_join():
    sin_nota = mov(id=1, due_date="2024-03-10")
    sin_items = mov(id=2, due_date="2024-03-10", invoice_key="K2")
    compra = leer_compra({"invoice_key": "K2"})
    params = Parametros("2024-03-01", "2024-03-31", profundidad="item")
    assert conciliar([sin_nota, sin_items], params, compras=[compra], items=[]) == []


def test_profundidad_nota_consolida_cuotas():
    cuotas = [
        mov(id=1, due_date="2024-03-10", invoice_key="K1", net_amount=100),
        mov(id=2, due_date="2024-03-20", invoice_key="K1", net_amount=50),
        mov(id=3, due_date="2024-04-20", invoice_key="K1", net_amount=999),  # fuera de ventana
    ]
    compra = leer_compra({"invoice_key": "K1", "invoice_total_amount": 1149})
    params = Parametros("2024-03-01", "2024-03-31", profundidad="nota")

    filas = conciliar(cuotas, params, compras=[compra])

    assert len(filas) == 1
    assert filas[0].importe == 150
    assert filas[0].estado == ESTADO_ABIERTO
    assert filas[0].pagado is False


def test_claves_nota_distintas_en_orden():
    ms = [mov(invoice_key="B"), mov(invoice_key="A"), mov(invoice_key="B"), mov()]
    assert claves_nota(ms) == ["B", "A"]


def test_orden_de_entrada_se_conserva():
    ms = [mov(id=i, due_date=f"2024-03-{d:02d}") for i, d in [(1, 20), (2, 5), (3, 12)]]
    assert [f.id for f in conciliar(ms, MARZO)] == ["1", "2", "3"]


def test_parametros_invalidos():
    with pytest.raises(ValueError):
        Parametros("2024-03-31", "2024-03-01")
    with pytest.raises(ValueError):
        Parametros("no-es-fecha", "2024-03-01")
    with pytest.raises(ValueError):
        Parametros("2024-03-01", "2024-03-31", profundidad="detalle")
