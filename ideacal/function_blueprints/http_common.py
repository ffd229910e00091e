from typing import Any, Dict, Optional

import azure.functions as func
from pydantic import BaseModel

from ideacal.specs.http.batch_generation import ErrorResponse

# Set by the upstream auth layer
OWNER_HEADER = "x-owner-id"


def owner_id_from(req: func.HttpRequest) -> str:
    return (req.headers.get(OWNER_HEADER) or "").strip()


def json_response(model: BaseModel, status_code: int) -> func.HttpResponse:
    return func.HttpResponse(
        body=model.model_dump_json(),
        mimetype="application/json",
        status_code=status_code,
    )


def error_response(
    message: str,
    status_code: int,
    *,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    needs_premium: Optional[bool] = None,
) -> func.HttpResponse:
    err = ErrorResponse(message=message, errorCode=error_code, details=details, needsPremium=needs_premium)
    return json_response(err, status_code)


def missing_owner_response() -> func.HttpResponse:
    return error_response("Missing owner", 400, error_code="MISSING_OWNER")
