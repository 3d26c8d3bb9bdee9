from __future__ import annotations
import hmac
import os


ENV_USUARIO = "AUTH_USERNAME"
ENV_CLAVE = "AUTH_PASSWORD"


def credenciales_validas(usuario: str, clave: str, env: dict[str, str] | None = None) -> bool:
    """Compara contra el único par usuario/clave del entorno.

    Sin credenciales configuradas nadie entra.
    """
    env = os.environ if env is None else env
    esperado_usuario = env.get(ENV_USUARIO, "")
    esperado_clave = env.get(ENV_CLAVE, "")
    if not esperado_usuario or not esperado_clave:
        return False
    ok_usuario = hmac.compare_digest((usuario or "").encode(), esperado_usuario.encode())
    ok_clave = hmac.compare_digest((clave or "").encode(), esperado_clave.encode())
    return ok_usuario and ok_clave
