from time import perf_counter
from typing import Optional

import azure.functions as func
from pydantic import ValidationError

from ideacal.agents.idea_client import GenerationClient
from ideacal.agents.provider import OpenAITextProvider
from ideacal.batch.orchestrator import BatchOrchestrator
from ideacal.batch.quota import QuotaGate
from ideacal.function_blueprints.http_common import (
    error_response,
    json_response,
    missing_owner_response,
    owner_id_from,
)
from ideacal.shared.idea_store import get_idea_store
from ideacal.shared.logging_utils import info as log_info, error as log_error, warning as log_warning
from ideacal.shared.quota_service import StoreQuotaService
from ideacal.specs.common.errors import (
    ConfigurationError,
    DailyLimitReachedError,
    EmptyPillarSetError,
    InvalidTimeframeError,
)
from ideacal.specs.http.batch_generation import BatchGenerationRequest, BatchGenerationResponse


bp = func.Blueprint()


def build_orchestrator() -> BatchOrchestrator:
    store = get_idea_store()
    try:
        provider = OpenAITextProvider()
    except ConfigurationError as exc:
        # Without a provider every slot is filled from the fallback generator
        log_warning(None, "batch:provider_unconfigured", error=str(exc))
        provider = None
    return BatchOrchestrator(
        store,
        QuotaGate(StoreQuotaService(store)),
        GenerationClient(provider),
    )


def handle_batch_generation(
    req: func.HttpRequest, orchestrator: Optional[BatchOrchestrator] = None
) -> func.HttpResponse:
    start = perf_counter()
    owner_id = owner_id_from(req)
    if not owner_id:
        log_error(None, "batch:missing_owner")
        return missing_owner_response()

    try:
        data = req.get_json()
    except ValueError:
        log_error(None, "batch:invalid_json")
        return error_response("Invalid JSON body", 400)

    try:
        parsed = BatchGenerationRequest.model_validate(data)
    except ValidationError as ex:
        log_error(None, "batch:invalid_request", error=str(ex))
        return error_response(
            f"Invalid request: {ex.error_count()} validation errors",
            400,
            error_code="INVALID_REQUEST",
            details={"errors": [e.get("msg") for e in ex.errors()]},
        )

    orchestrator = orchestrator or build_orchestrator()
    try:
        result = orchestrator.run(parsed.to_job(), owner_id)
    except (InvalidTimeframeError, EmptyPillarSetError) as ex:
        log_error(None, "batch:rejected", ownerId=owner_id, code=ex.code)
        return error_response(str(ex), 400, error_code=ex.code, details=ex.details or None)
    except DailyLimitReachedError as ex:
        log_info(None, "batch:daily_limit", ownerId=owner_id, generatedToday=ex.details.get("generatedToday"))
        return error_response(str(ex), 403, error_code=ex.code, details=ex.details, needs_premium=True)

    resp = BatchGenerationResponse(
        batchId=result.batchId,
        count=result.succeededCount,
        requestedCount=result.requestedCount,
        ideas=result.ideas,
    )
    duration_ms = int((perf_counter() - start) * 1000)
    log_info(result.batchId, "batch:responded", count=resp.count, durationMs=duration_ms)
    return json_response(resp, 201)


@bp.function_name(name="batch_generate")
@bp.route(route="batch_generate", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def batch_generate(req: func.HttpRequest) -> func.HttpResponse:
    return handle_batch_generation(req)
