# src/quest_tracker/core/errors.py

from __future__ import annotations


class QuestError(Exception):
    """Base class for errors raised by the tracker core."""


class StorageError(QuestError):
    """SQLite I/O or connection failure. Never retried by the core."""


class DecodeError(QuestError, ValueError):
    """An enum symbol could not be decoded."""

    def __init__(self, kind: str, raw: object) -> None:
        super().__init__(f"Unknown {kind}: {raw!r}")
        self.kind = kind
        self.raw = raw
