from __future__ import annotations

from pathlib import Path

import pytest

from pinchain.checkpoints.defaults import init_defaults
from pinchain.checkpoints.loader import CheckpointLoader, apply_entries, load_from_source
from pinchain.checkpoints.sources import StaticFeed
from pinchain.checkpoints.table import CheckpointTable
from pinchain.core.exceptions import UnparseableSourceError
from pinchain.core.types import Network
from tests.unit._checkpoint_data import H_A, H_B, H_C, MAIN_16000


class _DeadFeed:
    def fetch_records(self, network: Network) -> list[str]:
        raise UnparseableSourceError("unreachable")


def _mainnet() -> CheckpointTable:
    t = CheckpointTable()
    init_defaults(t, Network.MAINNET)
    return t


def test_load_from_source_skips_at_or_below_floor() -> None:
    t = CheckpointTable()
    assert load_from_source(t, [(100, H_A), (200, H_B), (201, H_C)], 200)
    assert t.heights() == [201]


def test_load_from_source_skips_malformed_records() -> None:
    t = CheckpointTable()
    report = apply_entries(t, [(10, "zz"), (11, H_A), (-3, H_A)], -10)
    assert report.ok
    assert report.malformed == 2
    assert t.heights() == [11]


def test_strict_source_fails_on_conflict_without_rollback() -> None:
    t = CheckpointTable()
    assert t.add_checkpoint(300, H_A)
    ok = load_from_source(t, [(250, H_B), (300, H_C), (400, H_C)], 0)
    assert not ok
    # 250 was added before the conflict; nothing after it was
    assert t.heights() == [250, 300]
    assert t.get_points()[300] == bytes.fromhex(H_A)


def test_lenient_source_drops_conflicts() -> None:
    t = CheckpointTable()
    assert t.add_checkpoint(300, H_A)
    report = apply_entries(t, [(300, H_C), (400, H_C)], 0, strict=False)
    assert report.ok
    assert report.conflicts == 1
    assert t.heights() == [300, 400]


def test_file_floor_is_hardcoded_max(write_hashfile) -> None:
    t = _mainnet()
    path = write_hashfile([{"height": 16000, "hash": H_A}, {"height": 17000, "hash": H_B}])
    loader = CheckpointLoader(t)

    assert loader.load_new_checkpoints(path, Network.MAINNET)

    assert t.get_max_height() == 17000
    assert t.get_points()[16000] == bytes.fromhex(MAIN_16000)
    assert loader.reports[0].below_floor == 1
    assert loader.reports[0].added == 1


def test_missing_file_is_not_an_error(temp_dir: Path) -> None:
    t = _mainnet()
    assert CheckpointLoader(t).load_new_checkpoints(temp_dir / "absent.json", Network.MAINNET)
    assert t.get_max_height() == 16500


def test_unparseable_file_fails_load(temp_dir: Path) -> None:
    path = temp_dir / "broken.json"
    path.write_text("{{{", encoding="utf-8")
    t = _mainnet()
    assert not CheckpointLoader(t).load_new_checkpoints(path, Network.MAINNET)
    assert t.get_max_height() == 16500


def test_file_with_internal_conflict_fails_load(write_hashfile) -> None:
    path = write_hashfile([{"height": 17000, "hash": H_A}, {"height": 17000, "hash": H_B}])
    t = _mainnet()
    assert not CheckpointLoader(t).load_new_checkpoints(path, Network.MAINNET)
    assert t.get_points()[17000] == bytes.fromhex(H_A)


def test_remote_floor_reflects_file_entries(write_hashfile) -> None:
    path = write_hashfile([{"height": 17000, "hash": H_A}])
    feed = StaticFeed({Network.MAINNET: [f"17000:{H_B}", f"16800:{H_B}", f"17500:{H_C}", "junk"]})
    t = _mainnet()
    loader = CheckpointLoader(t, feed=feed)

    assert loader.load_new_checkpoints(path, Network.MAINNET, enable_remote=True)

    assert t.heights()[-3:] == [16500, 17000, 17500]
    assert t.get_points()[17000] == bytes.fromhex(H_A)
    assert 16800 not in t


def test_remote_is_not_consulted_unless_enabled() -> None:
    feed = StaticFeed({Network.MAINNET: [f"20000:{H_A}"]})
    t = _mainnet()
    assert CheckpointLoader(t, feed=feed).load_new_checkpoints(None, Network.MAINNET)
    assert t.get_max_height() == 16500


@pytest.mark.parametrize("required, expected", [(False, True), (True, False)])
def test_dead_feed_policy(required: bool, expected: bool) -> None:
    t = _mainnet()
    loader = CheckpointLoader(t, feed=_DeadFeed(), feed_required=required)
    assert loader.load_new_checkpoints(None, Network.MAINNET, enable_remote=True) is expected


def test_default_feed_is_disabled() -> None:
    t = _mainnet()
    loader = CheckpointLoader(t, feed_required=True)
    assert not loader.load_checkpoints_from_feed(Network.MAINNET)
    assert not loader.load_new_checkpoints(None, Network.MAINNET, enable_remote=True)


def test_file_failure_fails_even_when_feed_succeeds(temp_dir: Path) -> None:
    path = temp_dir / "broken.json"
    path.write_text("nope", encoding="utf-8")
    feed = StaticFeed({Network.MAINNET: [f"20000:{H_A}"]})
    t = _mainnet()
    loader = CheckpointLoader(t, feed=feed, feed_required=True)
    assert not loader.load_new_checkpoints(path, Network.MAINNET, enable_remote=True)
    # feed entries still land: no rollback
    assert t.get_max_height() == 20000
