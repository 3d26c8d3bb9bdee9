from infra.auth import credenciales_validas


ENV = {"AUTH_USERNAME": "admin", "AUTH_PASSWORD": "s3creta"}


def test_credenciales_correctas():
    assert credenciales_validas("admin", "s3creta", ENV)


def test_credenciales_incorrectas():
    assert not credenciales_validas("admin", "otra", ENV)
    assert not credenciales_validas("", "", ENV)
    assert not credenciales_validas(None, None, ENV)


def test_sin_configurar_nadie_entra():
    assert not credenciales_validas("", "", {})
    assert not credenciales_validas("admin", "s3creta", {"AUTH_USERNAME": "admin"})
