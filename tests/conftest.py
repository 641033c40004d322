from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from taurus.runtime.log_policy import ROOT_LOGGER_NAME
from tests.env_helpers import taurus_env


@pytest.fixture(autouse=True)
def _clean_taurus_env():
    with taurus_env():
        yield


@pytest.fixture(autouse=True)
def _isolated_taurus_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def depstore(tmp_path: Path) -> Path:
    return tmp_path / "target" / "debug" / "deps" / "taurus.depstore"


@pytest.fixture
def write_jsonl():
    def _write(path: Path, rows: list[object]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            "\n".join(json.dumps(row, sort_keys=True) for row in rows) + "\n",
            encoding="utf-8",
        )
        return path

    return _write
