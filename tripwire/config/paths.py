from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


def _env_path(name: str, default: str) -> Path:
    return Path(os.getenv(name, default)).resolve()


STATE_DIR: Path = _env_path("TW_STATE_DIR", "/var/lib/tripwire/state")


def ensure_runtime_dirs(state_dir: Optional[Path] = None) -> Path:
    """Create the state directory (TW_STATE_DIR unless given) and return it."""
    target = Path(state_dir) if state_dir is not None else STATE_DIR
    target.mkdir(parents=True, exist_ok=True)
    return target
