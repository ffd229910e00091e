"""Persistence for ideas, calendar entries and user records.

Two backends share one surface:

- ``FileIdeaStore`` keeps everything in a single JSON file (local runs, tests).
- ``CosmosIdeaStore`` writes to Cosmos DB containers.

Both enforce slug uniqueness at write time and raise ``SlugConflictError`` when
the slug is already taken, whatever an earlier ``find_idea_by_slug`` probe said.
"""
import json
import os
import tempfile
import threading
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from azure.cosmos import exceptions

from ideacal.shared.logging_utils import info as log_info, error as log_error
from ideacal.specs.common.datetime_utils import format_iso_datetime
from ideacal.specs.common.errors import IdeaCalError, SlugConflictError
from ideacal.specs.models.domain import CalendarEntryDocument, IdeaDocument, UserDocument

# Use a temp-based directory by default to avoid Azure Functions
# file-watcher restarts when writing local runtime state.
_DEFAULT_STATE_BASE = Path(tempfile.gettempdir()) / "ideacal-runtime"
_STATE_DIR = Path(os.getenv("RUNTIME_STATE_DIR", str(_DEFAULT_STATE_BASE)))

IDEAS_CONTAINER = "ideas"
CALENDAR_CONTAINER = "calendarEntries"
SLUGS_CONTAINER = "ideaSlugs"
USERS_CONTAINER = "users"


class IdeaStore(Protocol):
    def create_idea(self, idea: IdeaDocument) -> IdeaDocument: ...

    def get_idea(self, idea_id: str) -> Optional[IdeaDocument]: ...

    def find_idea_by_slug(self, slug: str) -> Optional[IdeaDocument]: ...

    def delete_idea(self, idea_id: str) -> bool: ...

    def count_ideas_since(self, owner_id: str, since: datetime) -> int: ...

    def create_calendar_entry(self, entry: CalendarEntryDocument) -> CalendarEntryDocument: ...

    def get_calendar_entry(self, entry_id: str) -> Optional[CalendarEntryDocument]: ...

    def list_calendar_entries(
        self, owner_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[CalendarEntryDocument]: ...

    def delete_calendar_entry(self, entry_id: str) -> bool: ...

    def get_user(self, owner_id: str) -> Optional[UserDocument]: ...

    def upsert_user(self, user: UserDocument) -> UserDocument: ...


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _in_range(day: date, start: Optional[date], end: Optional[date]) -> bool:
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


class FileIdeaStore:
    """Single-file JSON store.

    A process-wide lock serializes check-then-insert so two batches in the same
    process cannot both claim one slug.
    """

    _lock = threading.RLock()

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else _STATE_DIR / "ideas.json"

    def _read_all(self) -> Dict[str, Dict[str, dict]]:
        empty: Dict[str, Dict[str, dict]] = {"ideas": {}, "calendarEntries": {}, "users": {}}
        if not self.path.exists():
            return empty
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            # a damaged file is an error, never an empty store
            log_error(None, "store:file:unreadable", path=str(self.path), error=str(exc))
            raise IdeaCalError(
                f"Idea store file '{self.path}' is unreadable",
                code="STORE_UNREADABLE",
                details={"path": str(self.path), "error": str(exc)},
            ) from exc
        if not isinstance(data, dict):
            raise IdeaCalError(
                f"Idea store file '{self.path}' is not a JSON object",
                code="STORE_UNREADABLE",
                details={"path": str(self.path)},
            )
        for key in empty:
            data.setdefault(key, {})
        return data

    def _write_all(self, data: Dict[str, Dict[str, dict]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        tmp.replace(self.path)

    # ---- ideas ----

    def create_idea(self, idea: IdeaDocument) -> IdeaDocument:
        with self._lock:
            data = self._read_all()
            if idea.id in data["ideas"]:
                raise IdeaCalError(f"Idea '{idea.id}' already exists", code="DUPLICATE_ID")
            if any(doc.get("slug") == idea.slug for doc in data["ideas"].values()):
                raise SlugConflictError(idea.slug)
            data["ideas"][idea.id] = idea.model_dump(mode="json")
            self._write_all(data)
        return idea

    def get_idea(self, idea_id: str) -> Optional[IdeaDocument]:
        doc = self._read_all()["ideas"].get(idea_id)
        return IdeaDocument.model_validate(doc) if doc else None

    def find_idea_by_slug(self, slug: str) -> Optional[IdeaDocument]:
        for doc in self._read_all()["ideas"].values():
            if doc.get("slug") == slug:
                return IdeaDocument.model_validate(doc)
        return None

    def delete_idea(self, idea_id: str) -> bool:
        with self._lock:
            data = self._read_all()
            if data["ideas"].pop(idea_id, None) is None:
                return False
            self._write_all(data)
        return True

    def count_ideas_since(self, owner_id: str, since: datetime) -> int:
        since_utc = _as_utc(since)
        count = 0
        for doc in self._read_all()["ideas"].values():
            if doc.get("ownerId") != owner_id:
                continue
            if _as_utc(IdeaDocument.model_validate(doc).createdAt) >= since_utc:
                count += 1
        return count

    # ---- calendar ----

    def create_calendar_entry(self, entry: CalendarEntryDocument) -> CalendarEntryDocument:
        with self._lock:
            data = self._read_all()
            if entry.id in data["calendarEntries"]:
                raise IdeaCalError(f"Calendar entry '{entry.id}' already exists", code="DUPLICATE_ID")
            data["calendarEntries"][entry.id] = entry.model_dump(mode="json")
            self._write_all(data)
        return entry

    def get_calendar_entry(self, entry_id: str) -> Optional[CalendarEntryDocument]:
        doc = self._read_all()["calendarEntries"].get(entry_id)
        return CalendarEntryDocument.model_validate(doc) if doc else None

    def list_calendar_entries(
        self, owner_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[CalendarEntryDocument]:
        entries = [
            CalendarEntryDocument.model_validate(doc)
            for doc in self._read_all()["calendarEntries"].values()
            if doc.get("ownerId") == owner_id
        ]
        entries = [e for e in entries if _in_range(e.date, start, end)]
        entries.sort(key=lambda e: (e.date, e.timeOfDay))
        return entries

    def delete_calendar_entry(self, entry_id: str) -> bool:
        with self._lock:
            data = self._read_all()
            if data["calendarEntries"].pop(entry_id, None) is None:
                return False
            self._write_all(data)
        return True

    # ---- users ----

    def get_user(self, owner_id: str) -> Optional[UserDocument]:
        doc = self._read_all()["users"].get(owner_id)
        return UserDocument.model_validate(doc) if doc else None

    def upsert_user(self, user: UserDocument) -> UserDocument:
        with self._lock:
            data = self._read_all()
            data["users"][user.id] = user.model_dump(mode="json")
            self._write_all(data)
        return user


class CosmosIdeaStore:
    """Cosmos DB backend.

    Ideas and calendar entries are partitioned by ``ownerId``. Because unique
    keys in Cosmos only hold within a logical partition, global slug
    uniqueness comes from ``ideaSlugs``: one document per slug with the slug
    as its id, so a second create for the same slug fails with 409.
    """

    def __init__(self, client: Any = None) -> None:
        if client is None:
            from ideacal.shared.cosmos_client import get_cosmos_client

            client = get_cosmos_client()
        self.client = client

    def _reserve_slug(self, idea: IdeaDocument) -> None:
        try:
            self.client.create_item(
                SLUGS_CONTAINER,
                {"id": idea.slug, "ideaId": idea.id, "ownerId": idea.ownerId},
            )
        except exceptions.CosmosResourceExistsError as exc:
            raise SlugConflictError(idea.slug) from exc

    def create_idea(self, idea: IdeaDocument) -> IdeaDocument:
        self._reserve_slug(idea)
        body = idea.model_dump(mode="json")
        body["createdAtUtc"] = format_iso_datetime(idea.createdAt)
        try:
            self.client.create_item(IDEAS_CONTAINER, body)
        except Exception:
            # Release the reservation so the slug is not orphaned.
            self.client.delete_item(SLUGS_CONTAINER, idea.slug)
            raise
        log_info(None, "cosmos:ideas:created", ideaId=idea.id, slug=idea.slug)
        return idea

    def _query_one_idea(self, field: str, value: str) -> Optional[Dict[str, Any]]:
        items = self.client.query_items(
            IDEAS_CONTAINER,
            f"SELECT * FROM c WHERE c.{field} = @value",
            [{"name": "@value", "value": value}],
        )
        return items[0] if items else None

    def get_idea(self, idea_id: str) -> Optional[IdeaDocument]:
        doc = self._query_one_idea("id", idea_id)
        return IdeaDocument.model_validate(doc) if doc else None

    def find_idea_by_slug(self, slug: str) -> Optional[IdeaDocument]:
        doc = self._query_one_idea("slug", slug)
        return IdeaDocument.model_validate(doc) if doc else None

    def delete_idea(self, idea_id: str) -> bool:
        doc = self._query_one_idea("id", idea_id)
        if not doc:
            return False
        deleted = self.client.delete_item(IDEAS_CONTAINER, idea_id, partition_key=doc.get("ownerId"))
        if doc.get("slug"):
            self.client.delete_item(SLUGS_CONTAINER, doc["slug"])
        return deleted

    def count_ideas_since(self, owner_id: str, since: datetime) -> int:
        items = self.client.query_items(
            IDEAS_CONTAINER,
            "SELECT VALUE COUNT(1) FROM c WHERE c.ownerId = @owner AND c.createdAtUtc >= @since",
            [
                {"name": "@owner", "value": owner_id},
                {"name": "@since", "value": format_iso_datetime(_as_utc(since))},
            ],
        )
        return int(items[0]) if items else 0

    def create_calendar_entry(self, entry: CalendarEntryDocument) -> CalendarEntryDocument:
        self.client.create_item(CALENDAR_CONTAINER, entry.model_dump(mode="json"))
        return entry

    def get_calendar_entry(self, entry_id: str) -> Optional[CalendarEntryDocument]:
        items = self.client.query_items(
            CALENDAR_CONTAINER,
            "SELECT * FROM c WHERE c.id = @id",
            [{"name": "@id", "value": entry_id}],
        )
        return CalendarEntryDocument.model_validate(items[0]) if items else None

    def list_calendar_entries(
        self, owner_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[CalendarEntryDocument]:
        query = "SELECT * FROM c WHERE c.ownerId = @owner"
        params: List[Dict[str, Any]] = [{"name": "@owner", "value": owner_id}]
        if start is not None:
            query += " AND c.date >= @start"
            params.append({"name": "@start", "value": start.isoformat()})
        if end is not None:
            query += " AND c.date <= @end"
            params.append({"name": "@end", "value": end.isoformat()})
        query += " ORDER BY c.date"
        return [CalendarEntryDocument.model_validate(doc) for doc in self.client.query_items(CALENDAR_CONTAINER, query, params)]

    def delete_calendar_entry(self, entry_id: str) -> bool:
        items = self.client.query_items(
            CALENDAR_CONTAINER,
            "SELECT c.id, c.ownerId FROM c WHERE c.id = @id",
            [{"name": "@id", "value": entry_id}],
        )
        if not items:
            return False
        return self.client.delete_item(CALENDAR_CONTAINER, entry_id, partition_key=items[0].get("ownerId"))

    def get_user(self, owner_id: str) -> Optional[UserDocument]:
        doc = self.client.read_item(USERS_CONTAINER, owner_id)
        return UserDocument.model_validate(doc) if doc else None

    def upsert_user(self, user: UserDocument) -> UserDocument:
        self.client.upsert_item(USERS_CONTAINER, user.model_dump(mode="json"))
        return user


def _select_backend() -> IdeaStore:
    backend = os.getenv("IDEA_STORE_BACKEND", "auto").lower()
    if backend == "file":
        return FileIdeaStore()
    if backend == "cosmos":
        return CosmosIdeaStore()
    # auto-detect cosmos if config present
    if os.getenv("COSMOS_DB_CONNECTION_STRING") and os.getenv("COSMOS_DB_NAME"):
        return CosmosIdeaStore()
    return FileIdeaStore()


@lru_cache(maxsize=1)
def get_idea_store() -> IdeaStore:
    """Get or create the process-wide store for the configured backend"""
    store = _select_backend()
    log_info(None, "store:selected", backend=type(store).__name__)
    return store
