# shelter_common package
"""
Common utilities and configuration for the Shelter Service Lambda functions.
"""

__version__ = "0.1.0"
__all__ = ["config", "observability", "get_config", "get_notifier_config", "logger", "tracer"]

# Make key components available at package level
from .config import get_config, get_notifier_config, AppConfig, NotifierConfig
from .observability import logger, tracer
from .db import get_shelter_db_client, ShelterDbClient
from .s3 import get_s3_client, S3Client
from .session import Session, Role
from .models import (
    DogStatus,
    Sex,
    ImageDb,
    ImageUploadPayload,
    AddImagesRequestPayload,
    ImageInfo,
    DogDb,
    CreateDogRequestPayload,
    UpdateDogRequestPayload,
    DogSummary,
    DogDetails,
    CatalogStats
)
