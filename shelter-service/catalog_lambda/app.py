from catalog_lambda import exception_handlers as eh

from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response
from aws_lambda_powertools.event_handler.openapi.exceptions import RequestValidationError
from aws_lambda_powertools.event_handler.openapi.params import Path
from aws_lambda_powertools.event_handler.exceptions import NotFoundError, ServiceError
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext

from botocore.exceptions import ClientError, BotoCoreError
from shelter_common import get_config, logger, tracer
from shelter_common.models import AddImagesRequestPayload, CreateDogRequestPayload, UpdateDogRequestPayload
from shelter_common.models import CatalogStats, DogDetails, DogSummary, ImageInfo
from shelter_common.session import Session
from catalog_lambda.handlers import CatalogService, HealthService
from typing import List, Optional
from typing_extensions import Annotated

app = APIGatewayRestResolver(enable_validation=True)

catalog_service = None
health_service = None

def get_catalog_service() -> CatalogService:
    global catalog_service
    if catalog_service is None:
        catalog_service = CatalogService(app_config=get_config())
    return catalog_service

def get_health_service() -> HealthService:
    global health_service
    if health_service is None:
        health_service = HealthService(
            catalog_service=get_catalog_service(),
            app_config=get_config())
    return health_service

def current_session() -> Optional[Session]:
    # Claims are filled in by the API Gateway Cognito authorizer, never by the client
    authorizer = app.current_event.raw_event.get("requestContext", {}).get("authorizer") or {}
    return Session.from_claims(authorizer.get("claims"), admin_group=get_config().admin_group)

@app.get("/dogs")
@tracer.capture_method
def list_available_dogs() -> List[DogSummary]:
    serv = get_catalog_service()
    return serv.list_available()

@app.get("/dogs/<dog_id>")
@tracer.capture_method
def get_dog(dog_id: Annotated[int, Path(description="dog id as integer")]) -> DogDetails:
    serv = get_catalog_service()
    dog = serv.get_dog(dog_id)
    if dog is None:
        raise NotFoundError(f"Dog {dog_id} not found")
    return dog

@app.get("/admin/dogs")
@tracer.capture_method
def list_all_dogs() -> List[DogSummary]:
    serv = get_catalog_service()
    return serv.list_all(current_session())

@app.post("/admin/dogs", responses={201: {"model": DogDetails}})
@tracer.capture_method
def create_dog(body: CreateDogRequestPayload):
    serv = get_catalog_service()
    created_dog = serv.create_dog(current_session(), body)
    return Response(status_code=201, content_type="application/json", body=created_dog.model_dump(mode="json"))

@app.put("/admin/dogs/<dog_id>")
@tracer.capture_method
def update_dog(
    dog_id: Annotated[int, Path(description="dog id as integer")],
    body: UpdateDogRequestPayload
) -> DogDetails:
    serv = get_catalog_service()
    updated_dog = serv.update_dog(current_session(), dog_id, body)
    if updated_dog is None:
        raise NotFoundError(f"Dog {dog_id} not found")
    return updated_dog

@app.delete("/admin/dogs/<dog_id>")
@tracer.capture_method
def delete_dog(dog_id: Annotated[int, Path(description="dog id as integer")]):
    serv = get_catalog_service()
    if not serv.delete_dog(current_session(), dog_id):
        raise NotFoundError(f"Dog {dog_id} not found")
    return {"message": f"Dog {dog_id} deleted"}

@app.post("/admin/dogs/<dog_id>/images", responses={201: {"model": List[ImageInfo]}})
@tracer.capture_method
def add_dog_images(
    dog_id: Annotated[int, Path(description="dog id as integer")],
    body: AddImagesRequestPayload
):
    serv = get_catalog_service()
    images = serv.add_images(current_session(), dog_id, body.images)
    if images is None:
        raise NotFoundError(f"Dog {dog_id} not found")
    return Response(status_code=201, content_type="application/json", body=[image.model_dump(mode="json") for image in images])

@app.delete("/admin/images/<image_id>")
@tracer.capture_method
def remove_dog_image(image_id: Annotated[int, Path(description="image id as integer")]):
    serv = get_catalog_service()
    if not serv.remove_image(current_session(), image_id):
        raise NotFoundError(f"Image {image_id} not found")
    return {"message": f"Image {image_id} deleted"}

@app.get("/admin/stats")
@tracer.capture_method
def get_stats() -> CatalogStats:
    serv = get_catalog_service()
    return serv.get_stats(current_session())

@app.get("/health")
@tracer.capture_method
def health_check():
    health_service = get_health_service()
    health_status = health_service.get_health_status()

    if health_status["status"] == "unhealthy":
        return Response(
            status_code=503,
            content_type="application/json",
            body=health_status
        )
    return health_status

app.exception_handler([ClientError, BotoCoreError])(eh.handle_store_error)
app.exception_handler(ServiceError)(eh.handle_service_error)
app.exception_handler(ValueError)(eh.handle_value_error)
app.exception_handler(RequestValidationError)(eh.handle_request_validation_error)
app.exception_handler(Exception)(eh.handle_generic_error)

@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context: LambdaContext) -> dict:
    return app.resolve(event, context)
