from __future__ import annotations
import yaml
from dataclasses import dataclass, field
from pathlib import Path


CONFIG_DEFAULT = Path(__file__).resolve().parent.parent / "config.yaml"


@dataclass(frozen=True)
class AppConfig:
    title: str
    page_layout: str
    fecha_vista_formato: str


@dataclass(frozen=True)
class RemotoConfig:
    env_url: str
    env_clave: str
    esquema: str
    tam_pagina: int = 1000
    timeout_segundos: int = 30
    max_claves_por_consulta: int = 200


@dataclass(frozen=True)
class ConciliacionConfig:
    orden_campo_default: str
    orden_direccion_default: str
    top_categorias: int
    estado_recibido: str
    top_categorias_items: int = 8
    estados_recibo: list[str] = field(default_factory=list)
    etiquetas_tipo_pago: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class VistaConfig:
    clave: str
    titulo: str
    tipos_pago: list[str] = field(default_factory=list)
    incluir: list[str] = field(default_factory=list)
    excluir: list[str] = field(default_factory=list)
    profundidad: str = "movimiento"


@dataclass(frozen=True)
class Config:
    app: AppConfig
    remoto: RemotoConfig
    conciliacion: ConciliacionConfig
    vistas: list[VistaConfig]

    def vista(self, clave: str) -> VistaConfig:
        for v in self.vistas:
            if v.clave == clave:
                return v
        raise KeyError(f"Vista desconocida: {clave}")


def load_config(path: str | Path = CONFIG_DEFAULT) -> Config:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    app = AppConfig(**data["app"])
    remoto = RemotoConfig(**data["remoto"])
    conc_data = dict(data["conciliacion"])
    # Claves numéricas del YAML (p.ej. 99999) se normalizan a texto
    conc_data["etiquetas_tipo_pago"] = {
        str(k): v for k, v in (conc_data.get("etiquetas_tipo_pago") or {}).items()
    }
    conc = ConciliacionConfig(**conc_data)
    vistas = [VistaConfig(**v) for v in data.get("vistas") or []]

    return Config(app=app, remoto=remoto, conciliacion=conc, vistas=vistas)
