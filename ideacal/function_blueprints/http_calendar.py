import calendar
from datetime import date
from typing import Optional, Tuple

import azure.functions as func

from ideacal.function_blueprints.http_common import (
    error_response,
    json_response,
    missing_owner_response,
    owner_id_from,
)
from ideacal.shared.idea_store import IdeaStore, get_idea_store
from ideacal.shared.logging_utils import info as log_info, warning as log_warning
from ideacal.specs.common.datetime_utils import utc_now
from ideacal.specs.common.errors import ResourceNotFoundError
from ideacal.specs.http.calendar import CalendarEntriesResponse, DeleteResponse


bp = func.Blueprint()


def _parse_day(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    return date.fromisoformat(raw.strip())


def month_range(year: int, month: int) -> Tuple[date, date]:
    """First and last day of ``month`` (1-12)."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def _entries_response(store: IdeaStore, owner_id: str, start: Optional[date], end: Optional[date]) -> func.HttpResponse:
    entries = store.list_calendar_entries(owner_id, start, end)
    log_info(None, "calendar:listed", ownerId=owner_id, count=len(entries))
    return json_response(CalendarEntriesResponse(count=len(entries), entries=entries), 200)


def handle_list_calendar(req: func.HttpRequest, store: Optional[IdeaStore] = None) -> func.HttpResponse:
    """List the caller's entries, optionally bounded by ``start``/``end`` (inclusive ISO dates)."""
    owner_id = owner_id_from(req)
    if not owner_id:
        return missing_owner_response()
    try:
        start = _parse_day(req.params.get("start"))
        end = _parse_day(req.params.get("end"))
    except ValueError as ex:
        log_warning(None, "calendar:invalid_range", error=str(ex))
        return error_response(f"Invalid date: {ex}", 400, error_code="INVALID_REQUEST")
    return _entries_response(store or get_idea_store(), owner_id, start, end)


def handle_month_calendar(req: func.HttpRequest, store: Optional[IdeaStore] = None) -> func.HttpResponse:
    """Entries for ``year``/``month`` (1-12), defaulting to the current UTC month."""
    owner_id = owner_id_from(req)
    if not owner_id:
        return missing_owner_response()
    today = utc_now().date()
    try:
        year = int(req.params.get("year") or today.year)
        month = int(req.params.get("month") or today.month)
        start, end = month_range(year, month)
    except ValueError as ex:
        log_warning(None, "calendar:invalid_month", error=str(ex))
        return error_response(f"Invalid month: {ex}", 400, error_code="INVALID_REQUEST")
    return _entries_response(store or get_idea_store(), owner_id, start, end)


def handle_delete_calendar_entry(req: func.HttpRequest, store: Optional[IdeaStore] = None) -> func.HttpResponse:
    """Delete one entry. The idea it references is kept."""
    owner_id = owner_id_from(req)
    if not owner_id:
        return missing_owner_response()
    entry_id = (req.route_params.get("entry_id") or "").strip()
    store = store or get_idea_store()
    entry = store.get_calendar_entry(entry_id) if entry_id else None
    if entry is None:
        err = ResourceNotFoundError("CalendarEntry", entry_id)
        return error_response(str(err), 404, error_code=err.code)
    if entry.ownerId != owner_id:
        log_warning(None, "calendar:delete_forbidden", entryId=entry_id, ownerId=owner_id)
        return error_response("Not authorized to delete this entry", 403, error_code="FORBIDDEN")
    store.delete_calendar_entry(entry_id)
    log_info(None, "calendar:deleted", entryId=entry_id, ideaRef=entry.ideaRef)
    return json_response(DeleteResponse(id=entry_id, message="Calendar entry deleted"), 200)


@bp.function_name(name="list_calendar")
@bp.route(route="calendar", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def list_calendar(req: func.HttpRequest) -> func.HttpResponse:
    return handle_list_calendar(req)


@bp.function_name(name="month_calendar")
@bp.route(route="calendar/month", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def month_calendar(req: func.HttpRequest) -> func.HttpResponse:
    return handle_month_calendar(req)


@bp.function_name(name="delete_calendar_entry")
@bp.route(route="calendar/{entry_id}", methods=["DELETE"], auth_level=func.AuthLevel.FUNCTION)
def delete_calendar_entry(req: func.HttpRequest) -> func.HttpResponse:
    return handle_delete_calendar_entry(req)
