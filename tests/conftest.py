"""Pytest global setup for isolated topov test state.

This keeps tests away from the user's ~/.topov config and log files.
"""

from __future__ import annotations

import atexit
import os
from pathlib import Path
import shutil
import tempfile


_TEST_ROOT = Path(tempfile.mkdtemp(prefix="topov-pytest-state-"))
_TEST_HOME = _TEST_ROOT / "home"
_TEST_LOG_DIR = _TEST_ROOT / "logs"

_TEST_HOME.mkdir(parents=True, exist_ok=True)
_TEST_LOG_DIR.mkdir(parents=True, exist_ok=True)

# Force test process (and imported topov modules) to use isolated paths.
os.environ["TOPOV_HOME"] = str(_TEST_HOME)
os.environ["TOPOV_LOG_DIR"] = str(_TEST_LOG_DIR)
for _name in ("TOPOV_REQUEST_TIMEOUT", "TOPOV_LINK_PERIOD", "TOPOV_LOG_LEVEL", "TOPOV_LOG_FILE"):
    os.environ.pop(_name, None)


@atexit.register
def _cleanup_test_state() -> None:
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)
