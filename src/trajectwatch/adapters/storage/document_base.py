"""Base class for traject stores persisted as one whole-collection document."""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any

from trajectwatch.core.exceptions import StorageError
from trajectwatch.core.models import Traject, TrajectDefaults
from trajectwatch.core.trajects import resolve_traject

logger = logging.getLogger(__name__)


def encode_document(trajects: list[Traject]) -> str:
    """Serialize trajects to the persisted JSON document."""
    return json.dumps({"trajects": [t.to_document() for t in trajects]}, indent=2)


def decode_document(text: str) -> list[Traject]:
    """Parse the persisted JSON document.

    Raises:
        StorageError: If the document is not valid JSON or a record is
            malformed.
    """
    try:
        data = json.loads(text)
        records = data["trajects"]
        if not isinstance(records, list):
            raise TypeError("trajects must be a list")
        return [Traject.from_document(record) for record in records]
    except (ValueError, KeyError, TypeError) as exc:
        raise StorageError(f"corrupt traject document: {exc}") from exc


class DocumentTrajectStore:
    """Traject store that rewrites its whole document on every mutation.

    Subclasses provide _load() and _save(); this class implements
    validation, registration order and failure handling. Loads and
    registrations on one instance are serialized by a lock, so subclasses
    never see concurrent _load/_save calls; across processes the last
    writer wins.
    """

    def __init__(self, defaults: TrajectDefaults | None = None) -> None:
        self._defaults = defaults or TrajectDefaults()
        self._lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the store lock (lazy to avoid event loop issues)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @property
    def defaults(self) -> TrajectDefaults:
        return self._defaults

    async def _load(self) -> list[Traject]:
        """Load all trajects; an absent document is an empty store.

        Must be overridden by subclasses.

        Raises:
            StorageError: If the document is unreadable or corrupt.
        """
        raise NotImplementedError

    async def _save(self, trajects: list[Traject]) -> None:
        """Durably replace the document.

        Must be overridden by subclasses.

        Raises:
            StorageError: If the document could not be written.
        """
        raise NotImplementedError

    async def register(self, spec: Mapping[str, Any]) -> Traject:
        """Validate, persist and return a new traject."""
        async with self._get_lock():
            current = await self._load()
            traject = resolve_traject(
                spec,
                {t.id for t in current},
                self._defaults,
                existing_log_files={t.log_file for t in current},
            )
            await self._save([*current, traject])
        logger.info(
            "Registered traject %s (%s)",
            traject.id,
            traject.name,
            extra={"traject_id": traject.id},
        )
        return traject

    async def list(self) -> list[Traject]:
        """Return all trajects, or an empty list if the store is unreadable."""
        try:
            async with self._get_lock():
                return await self._load()
        except StorageError:
            logger.exception("Traject store unreadable, serving empty list")
            return []

    async def get(self, traject_id: str) -> Traject | None:
        """Return the traject with the given id, if any."""
        for traject in await self.list():
            if traject.id == traject_id:
                return traject
        return None
