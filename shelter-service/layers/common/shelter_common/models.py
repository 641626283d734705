from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Any, Iterable, List, Optional
from enum import Enum
from .utils import DATETIME_NOW_UTC_FN, get_extension_from_filename, split_personality

class DogStatus(str, Enum):
    AVAILABLE = "available"
    ADOPTED = "adopted"

class Sex(str, Enum):
    MALE = "Macho"
    FEMALE = "Hembra"

# Image DB Models
class ImageDb(BaseModel):
    PK: str = Field(..., description="Partition Key, format: SHELTER#<shelter_id>")
    SK: str = Field(..., description="Sort Key, format: IMAGE#<dog_id>#<image_id>")
    image_id: int
    dog_id: int
    s3_key: str
    image_url: str
    display_order: int = 0
    created_at: str = Field(default_factory=lambda: DATETIME_NOW_UTC_FN().isoformat())

def order_gallery(images: Iterable[ImageDb]) -> List[ImageDb]:
    """Gallery sequence: ascending display_order, ties in insertion order (image ids are monotonic)."""
    return sorted(images, key=lambda image: (image.display_order, image.image_id))

def next_display_order(images: Iterable[ImageDb]) -> int:
    orders = [image.display_order for image in images]
    return max(orders) + 1 if orders else 0

# Image API Models
class ImageUploadPayload(BaseModel):
    model_config = ConfigDict(frozen=True)
    filename: str = Field(..., min_length=1, description="Original file name, used for the extension")
    content_base64: str = Field(..., min_length=1, description="Image bytes, base64 encoded")

    @field_validator("content_base64", mode="before")
    @classmethod
    def strip_data_url(cls, v: Any) -> Any:
        # Browsers hand out FileReader results as data:<mime>;base64,<payload>
        if isinstance(v, str) and v.startswith("data:") and "," in v:
            return v.split(",", 1)[1]
        return v

    @field_validator("content_base64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("content_base64 must be valid base64")
        return v

    @property
    def extension(self) -> str:
        return get_extension_from_filename(self.filename)

    @property
    def content(self) -> bytes:
        return base64.b64decode(self.content_base64)

class AddImagesRequestPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")
    images: List[ImageUploadPayload] = Field(..., min_length=1)

class ImageInfo(BaseModel):
    image_id: int
    dog_id: int
    image_url: str
    display_order: int
    created_at: str

    @classmethod
    def create(cls, image_db: ImageDb) -> "ImageInfo":
        return cls(
            image_id=image_db.image_id,
            dog_id=image_db.dog_id,
            image_url=image_db.image_url,
            display_order=image_db.display_order,
            created_at=image_db.created_at,
        )

# Dogs DB Models
class DogDb(BaseModel):
    PK: str = Field(..., description="Partition Key, format: SHELTER#<shelter_id>")
    SK: str = Field(..., description="Sort Key, format: DOG#<dog_id>")
    dog_id: int
    name: str
    breed: str
    age: str
    size: str
    gender: Sex
    story: str
    personality: List[str] = Field(default_factory=list)
    status: DogStatus = DogStatus.AVAILABLE
    images: List[ImageDb] = Field(default_factory=list)
    version: int = Field(default=1)
    created_at: str = Field(default_factory=lambda: DATETIME_NOW_UTC_FN().isoformat())
    updated_at: str = Field(default_factory=lambda: DATETIME_NOW_UTC_FN().isoformat())

    def ordered_images(self) -> List[ImageDb]:
        return order_gallery(self.images)

    def primary_image(self) -> Optional[ImageDb]:
        ordered = self.ordered_images()
        return ordered[0] if ordered else None

def newest_first(dogs: Iterable[DogDb]) -> List[DogDb]:
    return sorted(dogs, key=lambda dog: (dog.created_at, dog.dog_id), reverse=True)

# Dogs API Models
def _parse_personality(v: Any) -> Any:
    if isinstance(v, str):
        return split_personality(v)
    if isinstance(v, list):
        return [trait.strip() for trait in v if isinstance(trait, str) and trait.strip()]
    return v

class BaseDogFields(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)
    name: str = Field(..., min_length=1)
    breed: str = Field(..., min_length=1)
    age: str = Field(..., min_length=1, description="Free text, e.g. '2 años'")
    size: str = Field(..., min_length=1, description="Free text, e.g. 'Mediano'")
    gender: Sex
    story: str = Field(..., min_length=1)
    personality: List[str] = Field(default_factory=list, description="Traits in display order, or a comma separated string")
    status: DogStatus = DogStatus.AVAILABLE

    @field_validator("personality", mode="before")
    @classmethod
    def parse_personality(cls, v: Any) -> Any:
        return _parse_personality(v)

class CreateDogRequestPayload(BaseDogFields):
    model_config = ConfigDict(extra="forbid")
    images: List[ImageUploadPayload] = Field(default_factory=list)

    def dog_fields(self) -> dict:
        return self.model_dump(mode="json", exclude={"images"})

class UpdateDogRequestPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)
    name: Optional[str] = Field(default=None, min_length=1)
    breed: Optional[str] = Field(default=None, min_length=1)
    age: Optional[str] = Field(default=None, min_length=1)
    size: Optional[str] = Field(default=None, min_length=1)
    gender: Optional[Sex] = None
    story: Optional[str] = Field(default=None, min_length=1)
    personality: Optional[List[str]] = None
    status: Optional[DogStatus] = None

    @field_validator("personality", mode="before")
    @classmethod
    def parse_personality(cls, v: Any) -> Any:
        return _parse_personality(v)

    def changes(self) -> dict:
        """Fields the caller actually sent; a null means 'leave unchanged'."""
        return self.model_dump(mode="json", exclude_unset=True, exclude_none=True)

class DogSummary(BaseModel):
    dog_id: int
    name: str
    breed: str
    age: str
    size: str
    gender: Sex
    personality: List[str]
    status: DogStatus
    primary_image_url: Optional[str] = None
    image_count: int = 0
    created_at: str
    updated_at: str

    @classmethod
    def create(cls, dog_db: DogDb) -> "DogSummary":
        primary = dog_db.primary_image()
        return cls(
            dog_id=dog_db.dog_id,
            name=dog_db.name,
            breed=dog_db.breed,
            age=dog_db.age,
            size=dog_db.size,
            gender=dog_db.gender,
            personality=list(dog_db.personality),
            status=dog_db.status,
            primary_image_url=primary.image_url if primary else None,
            image_count=len(dog_db.images),
            created_at=dog_db.created_at,
            updated_at=dog_db.updated_at,
        )

class DogDetails(DogSummary):
    story: str
    images: List[ImageInfo] = Field(default_factory=list)
    version: int

    @classmethod
    def create(cls, dog_db: DogDb) -> "DogDetails":
        summary = DogSummary.create(dog_db)
        return cls(
            **summary.model_dump(),
            story=dog_db.story,
            images=[ImageInfo.create(image_db) for image_db in dog_db.ordered_images()],
            version=dog_db.version,
        )

class CatalogStats(BaseModel):
    total_dogs: int
    available_dogs: int
    adopted_dogs: int
    recent_dogs: int
    recent_days: int
