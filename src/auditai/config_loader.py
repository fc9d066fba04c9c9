# src/auditai/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml

from .core.types import AIProvider


class ConfigError(ValueError):
    pass


PROVIDERS = tuple(p.value for p in AIProvider)
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    if typ is bool and not isinstance(cur, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    return cur


def normalise_provider(name: str) -> str:
    provider = str(name).strip().lower()
    if provider not in PROVIDERS:
        raise ConfigError(f"Unknown model.provider '{provider}' (expected one of {', '.join(PROVIDERS)}).")
    return provider


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Validate required keys (no defaults here)
    _require(raw, "model.provider", str)
    _require(raw, "model.name", str)
    _require(raw, "runtime.stream", bool)

    raw["model"]["provider"] = normalise_provider(raw["model"]["provider"])

    instruction = raw["model"].get("system_instruction")
    if instruction is not None and not isinstance(instruction, str):
        raise ConfigError("'model.system_instruction' must be a string")

    providers = raw.get("providers") or {}
    if not isinstance(providers, dict):
        raise ConfigError("'providers' must be a mapping of provider name -> options")
    unknown = sorted(k for k in providers if str(k).lower() not in PROVIDERS)
    if unknown:
        raise ConfigError(f"Unknown provider section(s) under 'providers': {unknown}")
    raw["providers"] = {str(k).lower(): (v or {}) for k, v in providers.items()}

    level = (raw["runtime"].get("log_level") or "warning")
    if str(level).lower() not in LOG_LEVELS:
        raise ConfigError(f"Unknown runtime.log_level '{level}' (expected one of {', '.join(LOG_LEVELS)}).")
    raw["runtime"]["log_level"] = str(level).lower()

    # Leave paths as provided; bootstrap resolves them relative to the config dir
    return raw
