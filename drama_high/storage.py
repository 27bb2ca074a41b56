"""Blob storage for save slots.

The session only needs a flat key-value store:

    put(slot, blob)
    get(slot) -> blob | None

FileBlobStore keeps one JSON file per slot under a base directory:

    {base}/
      saves/
        {slot}.json
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

SAVE_SLOT = "dramahigh_save"


class BlobStore(Protocol):
    def put(self, slot: str, blob: str) -> None: ...

    def get(self, slot: str) -> str | None: ...


class FileBlobStore:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._saves = base_path / "saves"
        self._saves.mkdir(parents=True, exist_ok=True)

    def _slot_file(self, slot: str) -> Path:
        return self._saves / f"{slot}.json"

    def put(self, slot: str, blob: str) -> None:
        # Write then rename so a crash mid-write keeps the previous save.
        path = self._slot_file(slot)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(blob)
        tmp.replace(path)

    def get(self, slot: str) -> str | None:
        path = self._slot_file(slot)
        if not path.is_file():
            return None
        return path.read_text()


class MemoryBlobStore:
    """In-process store; nothing survives the process."""

    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}

    def put(self, slot: str, blob: str) -> None:
        self._blobs[slot] = blob

    def get(self, slot: str) -> str | None:
        return self._blobs.get(slot)
