from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response
from aws_lambda_powertools.event_handler.exceptions import ServiceError
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext

from adoption_info_lambda.handlers import AdoptionInfoNotifier
from adoption_info_lambda.models import AdoptionInfoDeliveryError, AdoptionInfoValidationError
from shelter_common import get_notifier_config, logger, tracer
from typing import Any, Dict

# Browsers call this function directly from the site's origin
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

app = APIGatewayRestResolver()

notifier = None

def get_notifier() -> AdoptionInfoNotifier:
    global notifier
    if notifier is None:
        notifier = AdoptionInfoNotifier(config=get_notifier_config())
    return notifier

def json_response(status_code: int, body: Dict[str, Any]) -> Response:
    return Response(status_code=status_code, content_type="application/json", body=body, headers=dict(CORS_HEADERS))

@app.route(".+", method="OPTIONS")
def preflight():
    return Response(status_code=200, body="", headers=dict(CORS_HEADERS))

@app.post("/send-adoption-info")
@tracer.capture_method
def send_adoption_info():
    try:
        body = app.current_event.json_body
    except (ValueError, TypeError):
        body = None
    result = get_notifier().handle(body)
    return json_response(200, result)

@app.exception_handler(AdoptionInfoValidationError)
def handle_validation_error(e: AdoptionInfoValidationError) -> Response:
    logger.info("Adoption info request rejected", kind=e.kind.value)
    return json_response(400, {"error": e.message})

@app.exception_handler(AdoptionInfoDeliveryError)
def handle_delivery_error(e: AdoptionInfoDeliveryError) -> Response:
    logger.error("Error in send-adoption-info function", error=e.message)
    return json_response(500, {"error": e.message})

@app.exception_handler(ServiceError)
def handle_service_error(e: ServiceError) -> Response:
    return json_response(e.status_code, {"error": e.msg})

@app.exception_handler(Exception)
def handle_generic_error(e: Exception) -> Response:
    logger.exception("Unhandled exception: %s", e)
    return json_response(500, {"error": "An unexpected error occurred"})

@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    return app.resolve(event, context)
