from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from void_archive.api.models import ResponseMessage, VirtualFile
from void_archive.core.events import GameEventType


class ContentLoadError(RuntimeError):
    pass


SCRIPTS_FILE = "scripts.json"

# Event type -> canned sequence name. Types missing here map to an empty sequence.
EVENT_SCRIPTS: dict[GameEventType, str] = {
    GameEventType.elara_first_contact: "elara_first_contact",
    GameEventType.secure_directory_accessed: "warden_warning",
    GameEventType.hidden_directory_found: "hidden_directory_reaction",
    GameEventType.system_log_read: "system_log_reaction",
}

SEED_MANIFESTS: dict[int, str] = {
    1: "act1.json",
}


def default_content_root() -> Path:
    # void_archive/content/registry.py -> void_archive/content/data
    return Path(__file__).resolve().parent / "data"


@dataclass(frozen=True, slots=True)
class SeedEntry:
    """One file of an act's initial tree. Materialized fresh per session."""

    path: str
    name: str
    kind: str
    content: str = ""
    hidden: bool = False

    def to_virtual_file(self) -> VirtualFile:
        if self.kind == "directory":
            return VirtualFile.directory(path=self.path, name=self.name, is_hidden=self.hidden)
        if self.kind == "script":
            return VirtualFile.script(path=self.path, name=self.name, content=self.content)
        return VirtualFile.file(path=self.path, name=self.name, content=self.content, is_hidden=self.hidden)


@dataclass(frozen=True, slots=True)
class NarrativeContent:
    """Immutable canned sequences and per-act seed trees."""

    scripts: dict[str, tuple[ResponseMessage, ...]]
    seeds: dict[int, tuple[SeedEntry, ...]]

    def script(self, name: str) -> list[ResponseMessage]:
        seq = self.scripts.get(name)
        if seq is None:
            raise ContentLoadError(f"Unknown script: {name}")
        # Hand out copies so callers can't mutate the shared sequence.
        return [m.model_copy() for m in seq]

    def messages_for_event(self, event_type: GameEventType) -> list[ResponseMessage]:
        name = EVENT_SCRIPTS.get(event_type)
        if name is None:
            return []
        return self.script(name)

    def seed_files(self, act: int) -> list[VirtualFile]:
        return [entry.to_virtual_file() for entry in self.seeds.get(act, ())]


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentLoadError(f"Content file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentLoadError(f"Invalid JSON in {path}: {e}") from e


def _load_scripts(path: Path) -> dict[str, tuple[ResponseMessage, ...]]:
    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise ContentLoadError(f"{path.name} must contain an object of script name -> messages")

    scripts: dict[str, tuple[ResponseMessage, ...]] = {}
    for name, rows in raw.items():
        try:
            messages = tuple(ResponseMessage.model_validate(row) for row in rows)
        except ValidationError as e:
            raise ContentLoadError(f"Invalid message in script '{name}': {e}") from e

        delays = [m.delay_ms for m in messages]
        if delays != sorted(delays):
            raise ContentLoadError(f"Script '{name}' has decreasing delays")
        scripts[name] = messages

    missing = sorted(set(EVENT_SCRIPTS.values()) - scripts.keys())
    if missing:
        raise ContentLoadError(f"Missing event scripts: {', '.join(missing)}")
    return scripts


def _load_seed(root: Path, manifest: str) -> tuple[SeedEntry, ...]:
    path = root / manifest
    rows = _read_json(path)
    body_dir = root / path.stem

    entries: list[SeedEntry] = []
    seen: set[str] = set()
    for row in rows:
        seed_path = row["path"]
        if not seed_path.startswith("/"):
            raise ContentLoadError(f"Seed path must be absolute: {seed_path}")
        if seed_path in seen:
            raise ContentLoadError(f"Duplicate seed path: {seed_path}")
        seen.add(seed_path)

        kind = row.get("kind", "file")
        if kind not in {"file", "script", "directory"}:
            raise ContentLoadError(f"Unknown seed kind '{kind}' for {seed_path}")

        content = ""
        source = row.get("source")
        if source:
            try:
                content = (body_dir / source).read_text(encoding="utf-8").rstrip("\n")
            except FileNotFoundError as e:
                raise ContentLoadError(f"Seed body not found: {body_dir / source}") from e

        entries.append(
            SeedEntry(
                path=seed_path,
                name=row["name"],
                kind=kind,
                content=content,
                hidden=bool(row.get("hidden", False)),
            )
        )
    return tuple(entries)


def load_narrative_content(*, root: Path) -> NarrativeContent:
    scripts = _load_scripts(root / SCRIPTS_FILE)
    seeds = {act: _load_seed(root, manifest) for act, manifest in SEED_MANIFESTS.items()}
    return NarrativeContent(scripts=scripts, seeds=seeds)
