from __future__ import annotations

import json
from pathlib import Path

import pytest

from void_archive.content.registry import (
    ContentLoadError,
    EVENT_SCRIPTS,
    default_content_root,
    load_narrative_content,
)
from void_archive.content.singleton import get_content


def _write_minimal_content(root: Path, *, scripts: dict) -> None:
    (root / "scripts.json").write_text(json.dumps(scripts), encoding="utf-8")
    (root / "act1").mkdir()
    (root / "act1" / "readme.txt").write_text("hello\n", encoding="utf-8")
    (root / "act1.json").write_text(
        json.dumps([{"path": "/readme.txt", "name": "readme.txt", "kind": "file", "source": "readme.txt"}]),
        encoding="utf-8",
    )


def _all_event_scripts() -> dict:
    return {name: [{"kind": "system", "text": name}] for name in EVENT_SCRIPTS.values()}


def test_packaged_content_loads() -> None:
    content = load_narrative_content(root=default_content_root())
    assert {"boot_sequence", "welcome"} <= content.scripts.keys()
    assert len(content.seed_files(1)) == 9
    assert content.seed_files(2) == []


def test_seed_bodies_come_from_act_directory(tmp_path: Path) -> None:
    _write_minimal_content(tmp_path, scripts=_all_event_scripts())
    content = load_narrative_content(root=tmp_path)

    (f,) = content.seed_files(1)
    assert f.path == "/readme.txt"
    assert f.content == "hello"


def test_script_returns_copies() -> None:
    content = get_content()
    msgs = content.script("welcome")
    msgs[0].text = "tampered"
    assert content.script("welcome")[0].text != "tampered"


def test_unknown_script_raises() -> None:
    with pytest.raises(ContentLoadError):
        get_content().script("does_not_exist")


def test_missing_event_script_is_rejected(tmp_path: Path) -> None:
    scripts = _all_event_scripts()
    scripts.pop("warden_warning")
    _write_minimal_content(tmp_path, scripts=scripts)

    with pytest.raises(ContentLoadError, match="warden_warning"):
        load_narrative_content(root=tmp_path)


def test_decreasing_delays_are_rejected(tmp_path: Path) -> None:
    scripts = _all_event_scripts()
    scripts["welcome"] = [
        {"kind": "system", "text": "a", "delay_ms": 500},
        {"kind": "system", "text": "b", "delay_ms": 100},
    ]
    _write_minimal_content(tmp_path, scripts=scripts)

    with pytest.raises(ContentLoadError, match="decreasing"):
        load_narrative_content(root=tmp_path)


def test_invalid_json_is_reported(tmp_path: Path) -> None:
    _write_minimal_content(tmp_path, scripts=_all_event_scripts())
    (tmp_path / "scripts.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ContentLoadError, match="Invalid JSON"):
        load_narrative_content(root=tmp_path)
