from __future__ import annotations

from pathlib import Path

from void_archive.content.registry import NarrativeContent, default_content_root, load_narrative_content


_CONTENT: NarrativeContent | None = None


def init_content(*, root: Path | None = None) -> NarrativeContent:
    """Load narrative content once and cache it.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _CONTENT
    if _CONTENT is None:
        _CONTENT = load_narrative_content(root=root or default_content_root())
    return _CONTENT


def reset_content_for_tests() -> None:
    global _CONTENT
    _CONTENT = None


def get_content() -> NarrativeContent:
    if _CONTENT is None:
        return init_content()
    return _CONTENT
