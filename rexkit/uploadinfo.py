"""Descriptions of blobs to upload, held in memory or on disk."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol

from rexkit.filemetadata import Digest


class EntryKind(enum.Enum):
    BLOB = "blob"
    FILE = "file"


class SerializableMessage(Protocol):
    def SerializeToString(self) -> bytes: ...


@dataclass(frozen=True)
class Entry:
    """An immutable upload entry; build it with the entry_from_* functions."""

    digest: Digest
    contents: bytes | None = None
    path: str = ""
    kind: EntryKind = EntryKind.BLOB

    def is_blob(self) -> bool:
        """Whether the entry is a blob in memory."""
        return self.kind is EntryKind.BLOB

    def is_file(self) -> bool:
        """Whether the entry is a file on disk."""
        return self.kind is EntryKind.FILE


def entry_from_blob(blob: bytes) -> Entry:
    """Create an entry for an in-memory blob."""
    return Entry(digest=Digest.from_blob(blob), contents=blob, kind=EntryKind.BLOB)


def entry_from_proto(msg: SerializableMessage) -> Entry:
    """Create an entry from the wire bytes of a protocol buffer message."""
    return entry_from_blob(msg.SerializeToString())


def entry_from_file(digest: Digest, path: str) -> Entry:
    """Create an entry for a file on disk whose digest is already known."""
    return Entry(digest=digest, path=path, kind=EntryKind.FILE)