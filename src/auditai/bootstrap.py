from __future__ import annotations
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional
import yaml
from dotenv import load_dotenv

from .config_loader import load_config, normalise_provider, ConfigError
from .core.types import DEFAULT_SYSTEM_INSTRUCTION, AIProvider, Settings
from .providers.model_policy import ModelCapabilities
from .secrets.sources import SecretsResolver

logger = logging.getLogger(__name__)


def _resolve_path(raw: str, config_dir: Path) -> Path:
    p = Path(raw)
    return p if p.is_absolute() else (config_dir / p)


def _load_capabilities(provider_cfg: Dict[str, Any], config_dir: Path) -> Optional[ModelCapabilities]:
    caps_file = provider_cfg.get("capabilities_file")
    if caps_file:
        caps_path = _resolve_path(caps_file, config_dir)
        if not caps_path.exists():
            raise ConfigError(f"Capabilities file not found: {caps_path}")
    else:
        # default location: config/providers/google.yaml
        caps_path = config_dir / "providers" / f"{AIProvider.GOOGLE.value}.yaml"
        if not caps_path.exists():
            return None
    try:
        return ModelCapabilities.load(caps_path)
    except (ValueError, KeyError, re.error, yaml.YAMLError) as e:
        raise ConfigError(f"Invalid capabilities file {caps_path}: {e}") from e


def build_app(
    config_path: Path,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Composition root: load YAML, resolve the API key and build the request
    Settings plus the per-provider adapter options.
    Returns: dict with cfg, settings, provider_cfg, paths, warnings.
    """
    load_dotenv()
    config_path = Path(config_path)
    cfg = load_config(config_path)
    config_dir = config_path.resolve().parent

    if provider:
        cfg["model"]["provider"] = normalise_provider(provider)
        if not model:
            # the configured model name belongs to the configured provider
            model = Settings.for_provider(cfg["model"]["provider"]).model
    if model:
        cfg["model"]["name"] = model

    provider_name = cfg["model"]["provider"]
    model_name = cfg["model"]["name"]
    provider_cfg = dict(cfg["providers"].get(provider_name, {}))

    warnings = []

    # ----- Secrets -----
    secrets_cfg = cfg.get("secrets") or {}
    resolver = SecretsResolver(
        method=secrets_cfg.get("method", "env"),
        mapping=secrets_cfg.get("mapping", {}),
    )
    api_key = resolver.api_key(provider_name)
    if not api_key and provider_name != AIProvider.LOCAL.value:
        warnings.append({
            "type": "missing_api_key",
            "provider": provider_name,
            "message": f"No API key found for '{provider_name}'; requests will be refused until one is set.",
        })

    # ----- Model capabilities (native provider only) -----
    if provider_name == AIProvider.GOOGLE.value:
        caps = _load_capabilities(provider_cfg, config_dir)
        if caps is not None:
            provider_cfg["capabilities"] = caps

    # ----- System prompt -----
    system_instruction = cfg["model"].get("system_instruction") or DEFAULT_SYSTEM_INSTRUCTION or None

    settings = Settings.for_provider(
        provider_name,
        api_key=api_key,
        model=model_name,
        base_url=provider_cfg.get("base_url"),
        system_instruction=system_instruction,
    )
    logger.debug("Settings built for provider=%s model=%s", settings.provider.value, settings.model)

    return {
        "cfg": cfg,
        "settings": settings,
        "provider_cfg": provider_cfg,
        "paths": {"config_dir": config_dir},
        "warnings": warnings,
    }
