from aws_lambda_powertools.event_handler.exceptions import ServiceError, UnauthorizedError
from botocore.exceptions import BotoCoreError, ClientError
from datetime import datetime, timedelta, timezone
from shelter_common.db import ShelterDbClient, get_shelter_db_client
from shelter_common.config import AppConfig
from shelter_common.models import DogDb, DogStatus, CreateDogRequestPayload, UpdateDogRequestPayload
from shelter_common.models import DogSummary, DogDetails, ImageDb, ImageInfo, ImageUploadPayload, CatalogStats
from shelter_common.models import newest_first, next_display_order
from shelter_common.observability import logger, tracer
from shelter_common.s3 import S3Client, get_s3_client
from shelter_common.session import Session
from shelter_common.utils import DATETIME_NOW_UTC_FN, get_content_type_from_extension
from typing import Callable, List, Dict, Any, Optional


class ForbiddenError(ServiceError):
    def __init__(self, msg: str):
        super().__init__(403, msg)


class CompensatingActions:
    """Undo steps for a multi-step write, replayed newest first when a later step fails."""

    def __init__(self):
        self._actions: List[tuple] = []

    def add(self, description: str, action: Callable[[], Any]):
        self._actions.append((description, action))

    def rollback(self):
        while self._actions:
            description, action = self._actions.pop()
            try:
                action()
                logger.info(f"Rolled back: {description}")
            except Exception as e:
                # keep undoing; the failure that triggered the rollback is re-raised by the caller
                logger.exception(f"Rollback step failed: {description}", exception=str(e))


class CatalogService:

    def __init__(self, app_config: AppConfig, db: Optional[ShelterDbClient] = None, s3: Optional[S3Client] = None):
        self.app_config = app_config
        self.db: ShelterDbClient = db or get_shelter_db_client(app_config=app_config)
        self.s3: S3Client = s3 or get_s3_client(app_config=app_config)

    # Public catalog

    @tracer.capture_method
    def list_available(self) -> List[DogSummary]:
        dogs_db: List[DogDb] = self.db.query_dogs_with_images(DogStatus.AVAILABLE)
        return [DogSummary.create(dog_db) for dog_db in newest_first(dogs_db)]

    @tracer.capture_method
    def get_dog(self, dog_id: int) -> Optional[DogDetails]:
        dog_db = self.db.get_dog_with_images(dog_id)
        if dog_db is None:
            return None
        return DogDetails.create(dog_db)

    # Admin record editor

    @tracer.capture_method
    def list_all(self, session: Optional[Session]) -> List[DogSummary]:
        self._require_admin(session)
        dogs_db: List[DogDb] = self.db.query_dogs_with_images()
        return [DogSummary.create(dog_db) for dog_db in newest_first(dogs_db)]

    @tracer.capture_method
    def create_dog(self, session: Optional[Session], dog: CreateDogRequestPayload) -> DogDetails:
        self._require_admin(session)
        self._validate_uploads(dog.images)

        undo = CompensatingActions()
        try:
            dog_db: DogDb = self.db.create_dog(dog.dog_fields())
            undo.add(f"delete dog {dog_db.dog_id}", lambda: self.db.delete_dog(dog_db.dog_id))
            dog_db.images = self._store_images(dog_db.dog_id, dog.images, start_order=0, undo=undo)
        except Exception:
            undo.rollback()
            raise

        logger.info("Dog registered", dog_id=dog_db.dog_id, user_id=session.user_id, images=len(dog_db.images))
        return DogDetails.create(dog_db)

    @tracer.capture_method
    def update_dog(self, session: Optional[Session], dog_id: int, dog: UpdateDogRequestPayload) -> Optional[DogDetails]:
        self._require_admin(session)
        dog_db = self.db.update_dog(dog_id, dog.changes())
        if dog_db is None:
            logger.info("Update skipped, dog not found", dog_id=dog_id)
            return None
        dog_db.images = self.db.query_images(dog_id)
        return DogDetails.create(dog_db)

    @tracer.capture_method
    def delete_dog(self, session: Optional[Session], dog_id: int) -> bool:
        self._require_admin(session)
        if self.db.get_dog(dog_id) is None:
            logger.info("Delete skipped, dog not found", dog_id=dog_id)
            return False

        # Images first, dog row last
        if self.app_config.cascade_deletes:
            for image_db in self.db.query_images(dog_id):
                self._delete_image(image_db)
        if self.db.delete_dog(dog_id) is None:
            logger.info("Delete skipped, dog already removed", dog_id=dog_id)
            return False
        logger.info("Dog deleted", dog_id=dog_id, user_id=session.user_id)
        return True

    @tracer.capture_method
    def add_images(self, session: Optional[Session], dog_id: int, images: List[ImageUploadPayload]) -> Optional[List[ImageInfo]]:
        self._require_admin(session)
        self._validate_uploads(images)

        if self.db.get_dog(dog_id) is None:
            return None
        start_order = next_display_order(self.db.query_images(dog_id))

        undo = CompensatingActions()
        try:
            stored = self._store_images(dog_id, images, start_order=start_order, undo=undo)
        except Exception:
            undo.rollback()
            raise
        return [ImageInfo.create(image_db) for image_db in stored]

    @tracer.capture_method
    def remove_image(self, session: Optional[Session], image_id: int) -> bool:
        self._require_admin(session)
        image_db = self.db.find_image(image_id)
        if image_db is None:
            return False
        if self.app_config.cascade_deletes:
            self._delete_image(image_db)
        else:
            self.db.delete_image(image_db.dog_id, image_db.image_id)
        return True

    @tracer.capture_method
    def get_stats(self, session: Optional[Session], now: Optional[datetime] = None) -> CatalogStats:
        self._require_admin(session)
        dogs_db = self.db.query_dogs()
        days = self.app_config.recent_dogs_days
        since = (now or DATETIME_NOW_UTC_FN()) - timedelta(days=days)
        return CatalogStats(
            total_dogs=len(dogs_db),
            available_dogs=sum(1 for dog in dogs_db if dog.status == DogStatus.AVAILABLE),
            adopted_dogs=sum(1 for dog in dogs_db if dog.status == DogStatus.ADOPTED),
            recent_dogs=sum(1 for dog in dogs_db if _parse_timestamp(dog.created_at) > since),
            recent_days=days
        )

    def _require_admin(self, session: Optional[Session]):
        if session is None:
            raise UnauthorizedError("Authentication required")
        if not session.is_admin:
            logger.warning("Admin operation refused", user_id=session.user_id)
            raise ForbiddenError("Administrator role required")

    def _validate_uploads(self, images: List[ImageUploadPayload]):
        supported = self.app_config.supported_image_extensions
        max_size = self.app_config.image_upload_max_size
        for image in images:
            if image.extension not in supported:
                raise ValueError(f"Unsupported image extension: {image.extension or '(none)'}. Supported extensions: {supported}")
            size = len(image.content)
            if size > max_size:
                raise ValueError(f"Image {image.filename} exceeds size limit: {size}/{max_size}")

    def _store_images(self, dog_id: int, images: List[ImageUploadPayload], start_order: int, undo: CompensatingActions) -> List[ImageDb]:
        stored: List[ImageDb] = []
        for index, image in enumerate(images):
            image_id = self.db.create_image_id()
            s3_key = f"shelters/{self.app_config.shelter_id}/dogs/{dog_id}/images/{image_id}.{image.extension}"

            self.s3.upload_object(s3_key, image.content, get_content_type_from_extension(image.extension))
            undo.add(f"delete object {s3_key}", lambda key=s3_key: self.s3.delete_object(key))

            image_url = self.s3.get_public_url(s3_key)
            image_db = self.db.create_image(dog_id, image_id, s3_key, image_url, start_order + index)
            undo.add(f"delete image {image_id}", lambda i=image_id: self.db.delete_image(dog_id, i))
            stored.append(image_db)
        return stored

    def _delete_image(self, image_db: ImageDb):
        # Blob first, row last
        self.s3.delete_object(image_db.s3_key)
        self.db.delete_image(image_db.dog_id, image_db.image_id)


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class HealthService:
    """Reachability of the record table and the image bucket, reported without store details."""

    def __init__(self, catalog_service: CatalogService, app_config: AppConfig):
        self.catalog_service = catalog_service
        self.service_name = app_config.powertools_service_name

    def _check(self, name: str, probe: Callable[[], Any]) -> Dict[str, str]:
        try:
            probe()
        except (ClientError, BotoCoreError) as e:
            logger.exception(f"{name} health check failed", error=str(e))
            return {"status": "unhealthy", "error": f"{name} unreachable"}
        return {"status": "healthy"}

    def get_health_status(self) -> Dict[str, Any]:
        checks = {
            "service": {"status": "healthy"},
            "database": self._check("database", self.catalog_service.db.health_check),
            "s3": self._check("s3", self.catalog_service.s3.health_check),
        }
        healthy = all(check["status"] == "healthy" for check in checks.values())
        return {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": DATETIME_NOW_UTC_FN().isoformat(),
            "service": self.service_name,
            "checks": checks
        }
