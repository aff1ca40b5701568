"""JSON file storage adapter for trajects."""

import asyncio
import os
import tempfile
from pathlib import Path

from trajectwatch.adapters.storage.document_base import (
    DocumentTrajectStore,
    decode_document,
    encode_document,
)
from trajectwatch.core.exceptions import StorageError
from trajectwatch.core.models import Traject, TrajectDefaults


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def _replace_atomically(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class JsonFileTrajectStore(DocumentTrajectStore):
    """Traject store kept in a single JSON document on disk.

    The document is replaced atomically (temp file, fsync, rename) so a
    crash never leaves a half-written store. File I/O runs in a worker
    thread to keep the event loop free.
    """

    def __init__(self, path: str | Path, defaults: TrajectDefaults | None = None) -> None:
        super().__init__(defaults)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def _load(self) -> list[Traject]:
        try:
            text = await asyncio.to_thread(_read_text, self._path)
        except OSError as exc:
            raise StorageError(f"cannot read {self._path}: {exc}") from exc
        if text is None or not text.strip():
            return []
        return decode_document(text)

    async def _save(self, trajects: list[Traject]) -> None:
        try:
            await asyncio.to_thread(
                _replace_atomically, self._path, encode_document(trajects)
            )
        except OSError as exc:
            raise StorageError(f"cannot write {self._path}: {exc}") from exc
