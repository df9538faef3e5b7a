from __future__ import annotations

import os
from pathlib import Path

from shipdesk import config


def data_dir() -> Path:
    env = os.getenv("DATA_DIR")
    if env:
        p = Path(env)
        p.mkdir(parents=True, exist_ok=True)
        return p

    p = Path(config.storage_dir())
    p.mkdir(parents=True, exist_ok=True)
    return p
