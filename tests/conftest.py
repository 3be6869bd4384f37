from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pinchain.checkpoints.table import CheckpointTable  # noqa: E402
from pinchain.core.config import Config  # noqa: E402

from tests.unit._checkpoint_data import H_A, H_B  # noqa: E402


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def table_500_1000() -> CheckpointTable:
    t = CheckpointTable()
    assert t.add_checkpoint(500, H_A)
    assert t.add_checkpoint(1000, H_B)
    return t


@pytest.fixture()
def write_hashfile(temp_dir: Path):
    def _write(lines: list[dict], name: str = "checkpoints.json") -> Path:
        path = temp_dir / "data" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"hashlines": lines}), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def test_config(temp_dir: Path) -> Config:
    """Config fixture that points data_dir to a temp directory."""

    return Config(data_dir=temp_dir / "data", config_dir=temp_dir / "config")
