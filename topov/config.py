"""Global paths and constants."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def _resolve_dir(raw: str) -> Path:
    return Path(os.path.expanduser(raw)).expanduser()


def _ensure_writable_dir(path: Path, fallback: Path) -> Path:
    """Ensure directory exists, falling back when creation is denied."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError:
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


_fallback_home = Path(tempfile.gettempdir()) / "topov"

TOPOV_HOME = _ensure_writable_dir(
    _resolve_dir(os.environ.get("TOPOV_HOME") or "~/.topov"),
    _fallback_home,
)
LOG_DIR = _ensure_writable_dir(
    _resolve_dir(os.environ.get("TOPOV_LOG_DIR") or str(TOPOV_HOME / "logs")),
    TOPOV_HOME / "logs",
)

USER_CONFIG_PATHS: tuple[Path, ...] = (
    TOPOV_HOME / "config.toml",
    Path.home() / ".config" / "topov" / "config.toml",
)

# Must match the overlay id the host canvas registers.
OVERLAY_ID = "ui-ref-overlay"
OVERLAY_TOOLTIP = "UI Reference Overlay"
