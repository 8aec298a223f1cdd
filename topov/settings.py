"""Typed settings loaded from TOML config with env-var overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path

from .config import USER_CONFIG_PATHS
from .errors import SettingsError

log = logging.getLogger(__name__)


def _load_default_toml() -> dict:
    """Load the built-in default_config.toml shipped with the package."""
    ref = resources.files("topov").joinpath("default_config.toml")
    return tomllib.loads(ref.read_text(encoding="utf-8"))


def _load_user_toml(paths: tuple[Path, ...] = USER_CONFIG_PATHS) -> dict:
    """Load the first readable user config, otherwise empty dict."""
    for config_path in paths:
        if not config_path.is_file():
            continue
        try:
            parsed = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            log.warning("Ignoring unreadable config %s: %s", config_path, exc)
            continue
        if isinstance(parsed, dict):
            return parsed
    return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base (override wins)."""
    merged = dict(base)
    for key, val in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


def _non_negative(name: str, raw: object) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise SettingsError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise SettingsError(f"{name} must be >= 0, got {value}")
    return value


# ── Dataclasses ──────────────────────────────────────────────────────


@dataclass
class ChainConfig:
    request_timeout: float


@dataclass
class PeerConfig:
    link_period: float


@dataclass
class Settings:
    overlay_id: str
    log_level: str
    chain: ChainConfig
    peer: PeerConfig

    _raw: dict = field(default_factory=dict, repr=False)


def load_settings(user_paths: tuple[Path, ...] = USER_CONFIG_PATHS) -> Settings:
    """Load settings: defaults ← user TOML ← env vars."""
    raw = _deep_merge(_load_default_toml(), _load_user_toml(user_paths))

    overlay = raw.get("overlay", {})
    chain = raw.get("chain", {})
    peer = raw.get("peer", {})
    logging_cfg = raw.get("logging", {})

    timeout = _non_negative(
        "chain.request_timeout",
        os.environ.get("TOPOV_REQUEST_TIMEOUT", chain.get("request_timeout", 10.0)),
    )
    link_period = _non_negative(
        "peer.link_period",
        os.environ.get("TOPOV_LINK_PERIOD", peer.get("link_period", 1.0)),
    )
    if link_period == 0:
        raise SettingsError("peer.link_period must be > 0")

    level = str(
        os.environ.get("TOPOV_LOG_LEVEL", logging_cfg.get("level", "INFO"))
    ).strip().upper() or "INFO"

    return Settings(
        overlay_id=str(overlay.get("id", "ui-ref-overlay")),
        log_level=level,
        chain=ChainConfig(request_timeout=timeout),
        peer=PeerConfig(link_period=link_period),
        _raw=raw,
    )
