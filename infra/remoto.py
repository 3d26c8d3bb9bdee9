"""Cliente HTTP mínimo para el almacén tabular remoto (PostgREST).

Solo expone lo que usa el tablero: lectura por rango (offset/limit sobre un orden
estable), filtros eq / gte / lte / in / ilike / or, y actualización de una fila
por clave primaria.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from typing import Any, Iterable

import requests

from infra.config import RemotoConfig
from infra.logger import get_logger


log = get_logger()

# Caracteres que PostgREST reserva dentro de listas in.(...) y or=(...)
_RESERVADOS = re.compile(r'[,.:()"\s]')


class ErrorRemoto(RuntimeError):
    """Falla de transporte o de consulta contra el almacén remoto."""

    def __init__(self, mensaje: str, status: int | None = None, cuerpo: str = ""):
        super().__init__(mensaje)
        self.status = status
        self.cuerpo = cuerpo


def _texto(valor: Any) -> str:
    if isinstance(valor, bool):
        return "true" if valor else "false"
    if valor is None:
        return "null"
    return str(valor)


def _citar(valor: Any) -> str:
    """Cita un valor para usarlo dentro de in.(...) u or=(...)."""
    texto = _texto(valor)
    if _RESERVADOS.search(texto):
        texto = texto.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{texto}"'
    return texto


def condicion(columna: str, operador: str, valor: Any) -> str:
    """Arma una condición `col.op.valor` para componer dentro de `or_`."""
    return f"{columna}.{operador}.{_citar(valor)}"


def condicion_in(columna: str, valores: Iterable[Any]) -> str:
    return f"{columna}.in.({','.join(_citar(v) for v in valores)})"


def grupo_or(*condiciones: str) -> str:
    """Sub-expresión `or(...)` para anidar dentro de `and_`."""
    return f"or({','.join(condiciones)})"


@dataclass(frozen=True)
class Consulta:
    """Descripción inmutable de una lectura: tabla, columnas, filtros y orden.

    Cada método devuelve una copia nueva, así la misma consulta puede
    reutilizarse página a página sin efectos colaterales.
    """
    tabla: str
    columnas: str = "*"
    filtros: tuple[tuple[str, str], ...] = ()
    orden: tuple[str, ...] = ()

    def _con(self, clave: str, valor: str) -> "Consulta":
        return replace(self, filtros=self.filtros + ((clave, valor),))

    def eq(self, columna: str, valor: Any) -> "Consulta":
        return self._con(columna, f"eq.{_texto(valor)}")

    def gte(self, columna: str, valor: Any) -> "Consulta":
        return self._con(columna, f"gte.{_texto(valor)}")

    def lte(self, columna: str, valor: Any) -> "Consulta":
        return self._con(columna, f"lte.{_texto(valor)}")

    def ilike(self, columna: str, patron: str) -> "Consulta":
        return self._con(columna, f"ilike.{patron}")

    def in_(self, columna: str, valores: Iterable[Any]) -> "Consulta":
        lista = ",".join(_citar(v) for v in valores)
        return self._con(columna, f"in.({lista})")

    def or_(self, *condiciones: str) -> "Consulta":
        return self._con("or", f"({','.join(condiciones)})")

    def and_(self, *condiciones: str) -> "Consulta":
        return self._con("and", f"({','.join(condiciones)})")

    def order(self, columna: str, ascendente: bool = True) -> "Consulta":
        sentido = "asc" if ascendente else "desc"
        return replace(self, orden=self.orden + (f"{columna}.{sentido}",))

    def parametros(self, desde: int | None = None, hasta: int | None = None) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = [("select", re.sub(r"\s+", "", self.columnas))]
        params.extend(self.filtros)
        if self.orden:
            params.append(("order", ",".join(self.orden)))
        if desde is not None and hasta is not None:
            params.append(("offset", str(desde)))
            params.append(("limit", str(hasta - desde + 1)))
        return params


class ClienteRemoto:
    def __init__(
        self,
        url: str,
        clave: str,
        esquema: str | None = None,
        timeout: int = 30,
        session: Any = None,
    ):
        if not url or not clave:
            raise ValueError("Faltan URL o clave del almacén remoto")
        self.base = url.rstrip("/") + "/rest/v1"
        self.clave = clave
        self.esquema = esquema
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    @classmethod
    def desde_config(cls, cfg: RemotoConfig) -> "ClienteRemoto":
        return cls(
            url=os.environ.get(cfg.env_url, ""),
            clave=os.environ.get(cfg.env_clave, ""),
            esquema=cfg.esquema,
            timeout=cfg.timeout_segundos,
        )

    def _headers(self, escritura: bool = False) -> dict[str, str]:
        headers = {
            "apikey": self.clave,
            "Authorization": f"Bearer {self.clave}",
            "Accept": "application/json",
        }
        if self.esquema:
            headers["Accept-Profile"] = self.esquema
            if escritura:
                headers["Content-Profile"] = self.esquema
        if escritura:
            headers["Content-Type"] = "application/json"
            headers["Prefer"] = "return=representation"
        return headers

    def _solicitar(self, metodo: str, tabla: str, params: list[tuple[str, str]], cuerpo: dict | None = None) -> list[dict]:
        url = f"{self.base}/{tabla}"
        try:
            resp = self.session.request(
                metodo,
                url,
                params=params,
                json=cuerpo,
                headers=self._headers(escritura=cuerpo is not None),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ErrorRemoto(f"Error de transporte en {metodo} {tabla}: {e}") from e

        if resp.status_code >= 400:
            raise ErrorRemoto(
                f"Error {resp.status_code} en {metodo} {tabla}: {resp.text}",
                status=resp.status_code,
                cuerpo=resp.text,
            )
        if resp.status_code == 204 or not resp.text:
            return []
        try:
            datos = resp.json()
        except ValueError as e:
            raise ErrorRemoto(
                f"Respuesta no JSON en {metodo} {tabla}: {e}",
                status=resp.status_code,
                cuerpo=resp.text,
            ) from e
        if not isinstance(datos, list):
            raise ErrorRemoto(
                f"Respuesta inesperada en {metodo} {tabla}: se esperaba una lista de filas",
                status=resp.status_code,
                cuerpo=resp.text,
            )
        return datos

    def obtener_pagina(self, consulta: Consulta, desde: int, hasta: int) -> list[dict]:
        """Filas en el rango inclusivo [desde, hasta] según el orden de la consulta."""
        return self._solicitar("GET", consulta.tabla, consulta.parametros(desde, hasta))

    def actualizar(self, tabla: str, valores: dict, columna_clave: str, valor_clave: Any) -> list[dict]:
        """Actualiza la fila cuya clave primaria coincide; devuelve la representación nueva."""
        params = [(columna_clave, f"eq.{_texto(valor_clave)}")]
        return self._solicitar("PATCH", tabla, params, cuerpo=valores)
