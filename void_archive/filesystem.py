from __future__ import annotations

import redis

from void_archive.api.models import VirtualFile
from void_archive.content.registry import NarrativeContent
from void_archive.content.singleton import get_content


FS_KEY_PREFIX = "void:fs:"  # + {session_id}


def _fs_key(session_id: str) -> str:
    return f"{FS_KEY_PREFIX}{session_id}"


def normalize_path(path: str) -> str:
    """Prepend `/` if missing. No other canonicalization."""

    return path if path.startswith("/") else f"/{path}"


class VirtualFileSystem:
    """Per-session file tree, stored as one Redis hash per session (path -> JSON file).

    An uninitialized session behaves like an empty tree: lookups return nothing,
    they never raise.
    """

    def __init__(self, *, r: redis.Redis, content: NarrativeContent | None = None) -> None:
        self._r = r
        self._content = content

    @property
    def content(self) -> NarrativeContent:
        return self._content or get_content()

    def _files(self, session_id: str) -> list[VirtualFile]:
        raw = self._r.hvals(_fs_key(session_id))
        return [VirtualFile.model_validate_json(v) for v in raw]

    def initialize_session(self, session_id: str, act: int) -> None:
        """Replace the session's tree with the seed set for `act` (empty for undefined acts)."""

        files = self.content.seed_files(act)
        key = _fs_key(session_id)

        pipe = self._r.pipeline()
        pipe.delete(key)
        if files:
            pipe.hset(key, mapping={f.path: f.model_dump_json() for f in files})
        pipe.execute()

    def destroy_session(self, session_id: str) -> None:
        self._r.delete(_fs_key(session_id))

    def list_files(self, session_id: str, path: str, show_hidden: bool = False) -> list[VirtualFile]:
        target = normalize_path(path)
        out = [
            f
            for f in self._files(session_id)
            if f.parent_path == target and (show_hidden or not f.is_hidden)
        ]
        out.sort(key=lambda f: f.name)
        return out

    def read_file(self, session_id: str, path: str) -> VirtualFile | None:
        raw = self._r.hget(_fs_key(session_id), normalize_path(path))
        if raw is None:
            return None
        return VirtualFile.model_validate_json(raw)

    def exists(self, session_id: str, path: str) -> bool:
        target = normalize_path(path)
        if self._r.hexists(_fs_key(session_id), target):
            return True
        # Directories may exist only implicitly, by having children.
        return any(f.parent_path == target for f in self._files(session_id))

    def write_file(self, session_id: str, file: VirtualFile) -> None:
        self._r.hset(_fs_key(session_id), file.path, file.model_dump_json())

    def delete_file(self, session_id: str, path: str) -> None:
        self._r.hdel(_fs_key(session_id), normalize_path(path))

    def is_executable(self, session_id: str, path: str) -> bool:
        f = self.read_file(session_id, path)
        return f is not None and f.is_executable
