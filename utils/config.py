"""
Configuration loading for the clearance trader.

Trading parameters live in a YAML file (``config.yaml`` at the project root,
or the path in ``CONFIG_PATH``) under a ``trade`` section. Credentials and
process switches come from the environment (a ``.env`` file is loaded by
``main.py``). A missing YAML file yields the default ``TradeConfig``.
"""

from __future__ import annotations

import os
from typing import Any, Dict

import yaml  # type: ignore

from models.trade_config import TradeConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))


def _config_path() -> str:
    return os.getenv("CONFIG_PATH") or os.path.join(PROJECT_ROOT, "config.yaml")


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load the raw YAML document.

    :returns: The parsed mapping. Missing files quietly yield an empty
        dictionary; a document that is not a mapping raises ``ValueError``.
    """
    config_path = path or _config_path()
    if not os.path.exists(config_path):
        return {}
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: se esperaba un mapa YAML, no {type(data).__name__}")
    return data


def load_trade_config(path: str | None = None) -> TradeConfig:
    """Build the ``TradeConfig`` from the ``trade`` section of the YAML file."""
    section = load_config(path).get("trade") or {}
    if not isinstance(section, dict):
        raise ValueError("la sección 'trade' debe ser un mapa")
    return TradeConfig.model_validate(section)


def env_flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")
