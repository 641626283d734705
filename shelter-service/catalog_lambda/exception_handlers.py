from aws_lambda_powertools.event_handler import Response
from aws_lambda_powertools.event_handler.openapi.exceptions import RequestValidationError
from botocore.exceptions import ClientError, BotoCoreError
from aws_lambda_powertools.event_handler.exceptions import ServiceError
from shelter_common.observability import logger
from typing import Any, Dict, Union

UPSTREAM_FAILURE_MESSAGE = "The shelter records are temporarily unavailable, please try again"

def _json(status_code: int, body: Dict[str, Any]) -> Response:
    return Response(status_code=status_code, content_type="application/json", body=body)

def handle_store_error(e: Union[ClientError, BotoCoreError]) -> Response:
    # Table and bucket details stay in the logs
    logger.exception("Record store failure: %s", e)
    return _json(503, {"error": "Service Unavailable", "message": UPSTREAM_FAILURE_MESSAGE})

def handle_service_error(e: ServiceError) -> Response:
    if e.status_code >= 500:
        logger.exception("ServiceError: %s", e.msg)
    else:
        logger.info("Request refused", status_code=e.status_code, reason=e.msg)
    return _json(e.status_code, {"message": e.msg})

def describe_validation_errors(errors) -> str:
    """First failing field, formatted for the admin form."""
    if not errors or not isinstance(errors[0], dict):
        return "Request validation failed"
    first = errors[0]
    loc = first.get("loc") or ["unknown"]
    return f"Validation error in field '{loc[-1]}': {first.get('msg', 'validation error')}"

def handle_request_validation_error(e: RequestValidationError) -> Response:
    errors = e.errors()
    logger.info("Request validation failed", extra={"errors": errors, "error_count": len(errors)})
    return _json(400, {"message": describe_validation_errors(errors), "type": "validation_error"})

def handle_value_error(e: ValueError) -> Response:
    logger.info("Rejected input: %s", e)
    return _json(400, {"message": str(e)})

def handle_generic_error(e: Exception) -> Response:
    logger.exception("Unhandled exception: %s", e)
    return _json(500, {"error": "Internal Server Error", "message": "An unexpected error occurred"})
