from typing import List, Literal, Optional
from functools import lru_cache
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

class ServiceConfig(BaseSettings):

    # Service configuration
    powertools_service_name: str = "shelter_service"
    log_level: str = "INFO"

    model_config = {"case_sensitive": False}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper()

    def __str__(self):
        dump = self.model_dump()
        dump['level'] = self.log_level
        dump['message'] = 'config'
        return str(dump)

    def maybe_print(self):
        if self.log_level.upper() in ["DEBUG", "INFO"]:
            print(self)


class AppConfig(ServiceConfig):

    # Database configuration
    shelter_table_name: str
    dynamodb_endpoint: Optional[str] = None
    shelter_id: str = "curico"

    # S3 configuration
    shelter_images_bucket: str
    s3_endpoint: Optional[str] = None
    images_public_base_url: Optional[str] = None

    # Upload configuration
    image_upload_max_size: int = Field(default=5 * 1024 * 1024)
    supported_image_extensions: List[str] = Field(default=['jpg', 'jpeg', 'png', 'webp', 'gif'])

    # Catalog behaviour
    admin_group: str = "admin"
    cascade_deletes: bool = True
    recent_dogs_days: int = Field(default=7, ge=1)

    @field_validator("dynamodb_endpoint", "s3_endpoint", "images_public_base_url")
    @classmethod
    def empty_as_none(cls, v):
        return None if v == "" else v

    @field_validator("images_public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/") if v else v

    @field_validator("supported_image_extensions")
    @classmethod
    def normalize_extensions(cls, v):
        return [ext.strip().lstrip(".").lower() for ext in v if ext.strip()]

    @field_validator("shelter_table_name")
    @classmethod
    def validate_shelter_table_name(cls, v):
        if not v or not v.strip():
            raise ValueError("SHELTER_TABLE_NAME environment variable must not be empty")
        return v.strip()

    @field_validator("shelter_images_bucket")
    @classmethod
    def validate_shelter_images_bucket(cls, v):
        if not v or not v.strip():
            raise ValueError("SHELTER_IMAGES_BUCKET environment variable must not be empty")
        return v.strip()


class NotifierConfig(ServiceConfig):

    powertools_service_name: str = "adoption_info"

    # Delivery configuration
    adoption_info_delivery: Literal["log", "email"] = "log"
    adoption_info_sender: Optional[str] = None
    adoption_info_subject: str = "Información de adopción"
    ses_endpoint: Optional[str] = None
    shelter_name: str = "Refugio Municipal de Curicó"

    @field_validator("adoption_info_delivery", mode="before")
    @classmethod
    def validate_delivery(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("ses_endpoint", "adoption_info_sender")
    @classmethod
    def empty_as_none(cls, v):
        return None if v is None or v.strip() == "" else v.strip()

    @model_validator(mode="after")
    def validate_sender(self):
        if self.adoption_info_delivery == "email" and not self.adoption_info_sender:
            raise ValueError("ADOPTION_INFO_SENDER environment variable must be set when ADOPTION_INFO_DELIVERY is 'email'")
        return self


@lru_cache(maxsize=1)
def get_service_config() -> ServiceConfig:
    return ServiceConfig()

@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    config = AppConfig()
    config.maybe_print()
    return config

@lru_cache(maxsize=1)
def get_notifier_config() -> NotifierConfig:
    config = NotifierConfig()
    config.maybe_print()
    return config
