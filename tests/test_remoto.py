import pytest
import requests

from infra.remoto import ClienteRemoto, Consulta, ErrorRemoto, condicion, condicion_in, grupo_or
from logic.conciliacion import Parametros
from logic.reporte import ControlGeneraciones, ejecutar


class RespuestaFalsa:
    def __init__(self, status_code=200, datos=None, texto=None):
        self.status_code = status_code
        self._datos = datos if datos is not None else []
        self.text = texto if texto is not None else ("[]" if datos is None else "x")

    def json(self):
        if isinstance(self._datos, Exception):
            raise self._datos
        return self._datos


class SesionFalsa:
    def __init__(self, respuesta=None, excepcion=None):
        self.respuesta = respuesta or RespuestaFalsa()
        self.excepcion = excepcion
        self.llamadas = []

    def request(self, metodo, url, **kwargs):
        self.llamadas.append((metodo, url, kwargs))
        if self.excepcion:
            raise self.excepcion
        return self.respuesta


def test_consulta_es_inmutable():
    base = Consulta("purchases")
    filtrada = base.eq("project_id", "7")
    assert base.filtros == ()
    assert filtrada.filtros == (("project_id", "eq.7"),)


def test_parametros_con_rango_y_orden():
    q = (
        Consulta("financial_movements", "id,\n  projects:project_id (name)")
        .gte("issue_date", "2024-03-01")
        .lte("issue_date", "2024-03-31")
        .order("issue_date", ascendente=False)
        .order("id")
    )
    params = q.parametros(2000, 2999)
    assert params[0] == ("select", "id,projects:project_id(name)")
    assert ("issue_date", "gte.2024-03-01") in params
    assert ("issue_date", "lte.2024-03-31") in params
    assert ("order", "issue_date.desc,id.asc") in params
    assert ("offset", "2000") in params
    assert ("limit", "1000") in params


def test_in_y_or_citan_valores_reservados():
    q = Consulta("purchases").in_("invoice_key", ["abc", "a,b"])
    assert q.filtros[0] == ("invoice_key", 'in.(abc,"a,b")')

    expr = grupo_or(condicion("payment_date", "gte", "2024-01-01"), condicion_in("payment_type", ["NFE", "NFS"]))
    assert expr == "or(payment_date.gte.2024-01-01,payment_type.in.(NFE,NFS))"


def test_booleanos_en_minuscula():
    assert Consulta("t").eq("is_paid", True).filtros == (("is_paid", "eq.true"),)


def test_cliente_requiere_url_y_clave():
    with pytest.raises(ValueError):
        ClienteRemoto("", "clave")


def test_obtener_pagina_envia_headers_y_esquema():
    sesion = SesionFalsa(RespuestaFalsa(200, [{"id": 1}]))
    cliente = ClienteRemoto("https://x.supabase.co/", "k", esquema="dashboard_new", session=sesion)

    filas = cliente.obtener_pagina(Consulta("receipts"), 0, 999)

    assert filas == [{"id": 1}]
    metodo, url, kwargs = sesion.llamadas[0]
    assert metodo == "GET"
    assert url == "https://x.supabase.co/rest/v1/receipts"
    assert kwargs["headers"]["Accept-Profile"] == "dashboard_new"
    assert kwargs["headers"]["apikey"] == "k"
    assert ("limit", "1000") in kwargs["params"]


def test_error_http_se_convierte_en_error_remoto():
    sesion = SesionFalsa(RespuestaFalsa(400, texto='{"message":"bad"}'))
    cliente = ClienteRemoto("https://x", "k", session=sesion)
    with pytest.raises(ErrorRemoto) as exc:
        cliente.obtener_pagina(Consulta("receipts"), 0, 9)
    assert exc.value.status == 400


def test_cuerpo_no_json_se_convierte_en_error_remoto():
    sesion = SesionFalsa(RespuestaFalsa(200, ValueError("Expecting value"), texto="<html>gateway</html>"))
    cliente = ClienteRemoto("https://x", "k", session=sesion)
    with pytest.raises(ErrorRemoto) as exc:
        cliente.obtener_pagina(Consulta("receipts"), 0, 9)
    assert exc.value.status == 200
    assert exc.value.cuerpo == "<html>gateway</html>"


def test_cuerpo_que_no_es_lista_se_rechaza():
    sesion = SesionFalsa(RespuestaFalsa(200, {"message": "ok"}))
    cliente = ClienteRemoto("https://x", "k", session=sesion)
    with pytest.raises(ErrorRemoto):
        cliente.obtener_pagina(Consulta("receipts"), 0, 9)


def test_reporte_con_cuerpo_no_json_devuelve_error():
    sesion = SesionFalsa(RespuestaFalsa(200, ValueError("Expecting value"), texto="<html>gateway</html>"))
    cliente = ClienteRemoto("https://x", "k", session=sesion)
    res = ejecutar(cliente, Parametros("2024-03-01", "2024-03-31"), ControlGeneraciones())
    assert res is not None
    assert not res.ok
    assert res.filas == []


def test_error_de_transporte_se_convierte_en_error_remoto():
    sesion = SesionFalsa(excepcion=requests.ConnectionError("sin red"))
    cliente = ClienteRemoto("https://x", "k", session=sesion)
    with pytest.raises(ErrorRemoto):
        cliente.obtener_pagina(Consulta("receipts"), 0, 9)


def test_actualizar_hace_patch_por_clave():
    sesion = SesionFalsa(RespuestaFalsa(200, [{"codigo_lancamento": 5, "status": "RECEBIDO"}]))
    cliente = ClienteRemoto("https://x", "k", esquema="dashboard_new", session=sesion)

    cliente.actualizar("receipts", {"status": "RECEBIDO"}, "codigo_lancamento", 5)

    metodo, url, kwargs = sesion.llamadas[0]
    assert metodo == "PATCH"
    assert kwargs["params"] == [("codigo_lancamento", "eq.5")]
    assert kwargs["json"] == {"status": "RECEBIDO"}
    assert kwargs["headers"]["Content-Profile"] == "dashboard_new"
