from typing import Optional

import azure.functions as func

from ideacal.function_blueprints.http_common import (
    error_response,
    json_response,
    missing_owner_response,
    owner_id_from,
)
from ideacal.shared.idea_store import IdeaStore, get_idea_store
from ideacal.shared.logging_utils import info as log_info, warning as log_warning
from ideacal.specs.common.errors import ResourceNotFoundError
from ideacal.specs.http.calendar import DeleteResponse


bp = func.Blueprint()


def _not_found(resource_id: str) -> func.HttpResponse:
    err = ResourceNotFoundError("Idea", resource_id)
    return error_response(str(err), 404, error_code=err.code)


def handle_get_idea(req: func.HttpRequest, store: Optional[IdeaStore] = None) -> func.HttpResponse:
    """Public ideas are readable by anyone, private ones only by their owner."""
    slug = (req.route_params.get("slug") or "").strip()
    store = store or get_idea_store()
    idea = store.find_idea_by_slug(slug) if slug else None
    if idea is None:
        log_info(None, "idea:not_found", slug=slug)
        return _not_found(slug)
    if not idea.isPublic and idea.ownerId != owner_id_from(req):
        log_warning(None, "idea:forbidden", slug=slug)
        return error_response("Not authorized to view this idea", 403, error_code="FORBIDDEN")
    log_info(None, "idea:found", slug=slug, ideaId=idea.id)
    return func.HttpResponse(
        body=idea.model_dump_json(),
        mimetype="application/json",
        status_code=200,
    )


def handle_delete_idea(req: func.HttpRequest, store: Optional[IdeaStore] = None) -> func.HttpResponse:
    """Delete one idea. Calendar entries pointing at it are kept."""
    owner_id = owner_id_from(req)
    if not owner_id:
        return missing_owner_response()
    idea_id = (req.route_params.get("idea_id") or "").strip()
    store = store or get_idea_store()
    idea = store.get_idea(idea_id) if idea_id else None
    if idea is None:
        log_info(None, "idea:delete_not_found", ideaId=idea_id)
        return _not_found(idea_id)
    if idea.ownerId != owner_id:
        log_warning(None, "idea:delete_forbidden", ideaId=idea_id, ownerId=owner_id)
        return error_response("Not authorized to delete this idea", 403, error_code="FORBIDDEN")
    store.delete_idea(idea_id)
    log_info(None, "idea:deleted", ideaId=idea_id, slug=idea.slug)
    return json_response(DeleteResponse(id=idea_id, message="Idea deleted"), 200)


@bp.function_name(name="get_idea")
@bp.route(route="ideas/{slug}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_idea(req: func.HttpRequest) -> func.HttpResponse:
    return handle_get_idea(req)


@bp.function_name(name="delete_idea")
@bp.route(route="ideas/{idea_id}", methods=["DELETE"], auth_level=func.AuthLevel.FUNCTION)
def delete_idea(req: func.HttpRequest) -> func.HttpResponse:
    return handle_delete_idea(req)
