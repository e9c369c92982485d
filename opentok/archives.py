"""Archive management on top of the REST client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

from .client import OpenTokTransportError

if TYPE_CHECKING:
    from .client import Client

logger = logging.getLogger(__name__)

MAX_ARCHIVE_PAGE = 1000


class ArchiveError(RuntimeError):
    """Raised when an archive operation fails."""


@dataclass
class Archive:
    """An archive as reported by the platform."""

    id: str
    session_id: str
    status: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None
    duration: int = 0
    size: int = 0
    url: Optional[str] = None
    partner_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)
    _archives: Optional["Archives"] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: Dict[str, Any], archives: Optional["Archives"] = None) -> "Archive":
        try:
            archive_id = data["id"]
        except (KeyError, TypeError) as exc:
            raise ArchiveError("Archive response is missing an id") from exc
        created_ms = data.get("createdAt")
        created_at = (
            datetime.fromtimestamp(created_ms / 1000, tz=timezone.utc)
            if isinstance(created_ms, (int, float))
            else None
        )
        partner = data.get("partnerId")
        return cls(
            id=str(archive_id),
            session_id=str(data.get("sessionId", "")),
            status=str(data.get("status", "unknown")),
            name=data.get("name"),
            created_at=created_at,
            duration=int(data.get("duration") or 0),
            size=int(data.get("size") or 0),
            url=data.get("url"),
            partner_id=str(partner) if partner is not None else None,
            raw=dict(data),
            _archives=archives,
        )

    def _owner(self) -> "Archives":
        if self._archives is None:
            raise ArchiveError("Archive is not attached to an Archives instance")
        return self._archives

    def stop(self) -> "Archive":
        """Stop recording and return the updated archive."""

        return self._owner().stop_by_id(self.id)

    def delete(self) -> None:
        self._owner().delete_by_id(self.id)


@dataclass
class ArchiveList:
    """One page of archives plus the total available."""

    count: int
    items: List[Archive]

    def __iter__(self) -> Iterator[Archive]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class Archives:
    """Start, stop, list and delete archives for the partner's sessions."""

    def __init__(self, client: "Client") -> None:
        self.client = client

    def create(self, session_id: str, name: str | None = None) -> Archive:
        """Start recording *session_id*."""

        if not session_id:
            raise ValueError("session_id is required to start an archive")
        try:
            data = self.client.start_archive(session_id, name=name)
        except OpenTokTransportError as exc:
            raise ArchiveError(f"Failed to start archive for session {session_id}: {exc}") from exc
        archive = Archive.from_json(data, self)
        logger.info("Started archive", extra={"archive_id": archive.id, "session_id": session_id})
        return archive

    def stop_by_id(self, archive_id: str) -> Archive:
        try:
            data = self.client.stop_archive(archive_id)
        except OpenTokTransportError as exc:
            raise ArchiveError(f"Failed to stop archive {archive_id}: {exc}") from exc
        logger.info("Stopped archive", extra={"archive_id": archive_id})
        return Archive.from_json(data, self)

    def find(self, archive_id: str) -> Archive:
        try:
            data = self.client.get_archive(archive_id)
        except OpenTokTransportError as exc:
            raise ArchiveError(f"Failed to fetch archive {archive_id}: {exc}") from exc
        return Archive.from_json(data, self)

    def all(self, offset: int = 0, count: int | None = None) -> ArchiveList:
        """Return a page of archives, newest first."""

        if offset < 0:
            raise ValueError("offset must not be negative")
        if count is not None and not 1 <= count <= MAX_ARCHIVE_PAGE:
            raise ValueError(f"count must be between 1 and {MAX_ARCHIVE_PAGE}")
        try:
            data = self.client.list_archives(offset=offset, count=count)
        except OpenTokTransportError as exc:
            raise ArchiveError(f"Failed to list archives: {exc}") from exc
        items = [Archive.from_json(item, self) for item in data.get("items", [])]
        return ArchiveList(count=int(data.get("count", len(items))), items=items)

    def delete_by_id(self, archive_id: str) -> None:
        try:
            self.client.delete_archive(archive_id)
        except OpenTokTransportError as exc:
            raise ArchiveError(f"Failed to delete archive {archive_id}: {exc}") from exc
        logger.info("Deleted archive", extra={"archive_id": archive_id})
