import boto3
import json

from botocore.config import Config
from botocore.exceptions import ClientError
from boto3.dynamodb.conditions import Attr, Key
from decimal import Decimal

from .config import AppConfig
from .observability import logger
from .utils import DATETIME_NOW_UTC_FN
from .models import DogDb, DogStatus, ImageDb
from typing import Any, Dict, List, Optional

class ShelterDbClient:

    def __init__(self, app_config: AppConfig):
        self.table_name = app_config.shelter_table_name
        self.endpoint_url = app_config.dynamodb_endpoint
        self.shelter_id = app_config.shelter_id
        config = Config(connect_timeout=2, read_timeout=5, retries={"max_attempts": 2})
        self._ddb = boto3.resource("dynamodb", config=config, endpoint_url=self.endpoint_url)
        self._table = self._ddb.Table(self.table_name)

    @property
    def pk(self) -> str:
        return f"SHELTER#{self.shelter_id}"

    def query_dogs(self, status: Optional[DogStatus] = None) -> List[DogDb]:
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(self.pk) & Key("SK").begins_with("DOG#")
        }
        if status is not None:
            kwargs["FilterExpression"] = Attr("status").eq(DogStatus(status).value)
        items = self._query_all(**kwargs)
        return [DogDb.model_validate(item) for item in items]

    def query_images(self, dog_id: Optional[int] = None) -> List[ImageDb]:
        sk_prefix = "IMAGE#" if dog_id is None else f"IMAGE#{dog_id}#"
        items = self._query_all(
            KeyConditionExpression=Key("PK").eq(self.pk) & Key("SK").begins_with(sk_prefix)
        )
        return [ImageDb.model_validate(item) for item in items]

    def query_dogs_with_images(self, status: Optional[DogStatus] = None) -> List[DogDb]:
        dogs: List[DogDb] = self.query_dogs(status)
        if not dogs:
            return dogs
        images: List[ImageDb] = self.query_images()
        return self._merge_dogs_with_images(dogs, images)

    def get_dog(self, dog_id: int) -> Optional[DogDb]:
        resp = self._table.get_item(Key={"PK": self.pk, "SK": f"DOG#{dog_id}"})
        item = resp.get("Item")
        if not item:
            return None
        return DogDb.model_validate(self._normalize_item(item))

    def get_dog_with_images(self, dog_id: int) -> Optional[DogDb]:
        dog = self.get_dog(dog_id)
        if dog is None:
            return None
        dog.images = self.query_images(dog_id)
        return dog

    def create_dog(self, fields: Dict[str, Any]) -> DogDb:
        dog_id = self._next_sequence_id("dog_counter")
        item = DogDb(
            PK=self.pk,
            SK=f"DOG#{dog_id}",
            dog_id=dog_id,
            **fields
        )
        self._table.put_item(Item=item.model_dump(mode="json", exclude={"images"}, exclude_none=True))
        logger.info("Dog created", dog_id=dog_id)
        return item

    def update_dog(self, dog_id: int, changes: Dict[str, Any]) -> Optional[DogDb]:
        names = {"#updated_at": "updated_at", "#version": "version"}
        values: Dict[str, Any] = {":updated_at": DATETIME_NOW_UTC_FN().isoformat(), ":one": 1}
        assignments = ["#updated_at = :updated_at"]
        for field, value in changes.items():
            names[f"#{field}"] = field
            values[f":{field}"] = value
            assignments.append(f"#{field} = :{field}")

        try:
            resp = self._table.update_item(
                Key={"PK": self.pk, "SK": f"DOG#{dog_id}"},
                UpdateExpression=f"SET {', '.join(assignments)} ADD #version :one",
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW")
        except ClientError as e:
            if self._is_condition_failure(e):
                return None
            raise
        return DogDb.model_validate(self._normalize_item(resp["Attributes"]))

    def delete_dog(self, dog_id: int) -> Optional[DogDb]:
        resp = self._table.delete_item(
            Key={"PK": self.pk, "SK": f"DOG#{dog_id}"},
            ReturnValues="ALL_OLD")
        item = resp.get("Attributes")
        if not item:
            return None
        return DogDb.model_validate(self._normalize_item(item))

    def create_image_id(self) -> int:
        return self._next_sequence_id("image_counter")

    def create_image(self, dog_id: int, image_id: int, s3_key: str, image_url: str, display_order: int) -> ImageDb:
        item = ImageDb(
            PK=self.pk,
            SK=f"IMAGE#{dog_id}#{image_id}",
            image_id=image_id,
            dog_id=dog_id,
            s3_key=s3_key,
            image_url=image_url,
            display_order=display_order
        )
        self._table.put_item(Item=item.model_dump(mode="json", exclude_none=True))
        return item

    def find_image(self, image_id: int) -> Optional[ImageDb]:
        items = self._query_all(
            KeyConditionExpression=Key("PK").eq(self.pk) & Key("SK").begins_with("IMAGE#"),
            FilterExpression=Attr("image_id").eq(image_id)
        )
        if not items:
            return None
        return ImageDb.model_validate(items[0])

    def delete_image(self, dog_id: int, image_id: int) -> Optional[ImageDb]:
        resp = self._table.delete_item(
            Key={"PK": self.pk, "SK": f"IMAGE#{dog_id}#{image_id}"},
            ReturnValues="ALL_OLD")
        item = resp.get("Attributes")
        if not item:
            return None
        return ImageDb.model_validate(self._normalize_item(item))

    def health_check(self):
        self._table.meta.client.describe_table(TableName=self.table_name)

    def _query_all(self, **kwargs) -> List[dict]:
        items: List[dict] = []
        while True:
            resp = self._table.query(**kwargs)
            items.extend(self._normalize_item(item) for item in resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _next_sequence_id(self, counter_name: str) -> int:
        resp = self._table.update_item(
            Key={"PK": self.pk, "SK": "META#SEQUENCE"},
            UpdateExpression="ADD #c :inc",
            ExpressionAttributeNames={"#c": counter_name},
            ExpressionAttributeValues={":inc": Decimal(1)},
            ReturnValues="UPDATED_NEW")

        new_val = resp.get("Attributes", {}).get(counter_name, 0)
        return int(new_val)

    def _is_condition_failure(self, e: ClientError) -> bool:
        return e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"

    def _normalize_item(self, item: dict) -> dict:
        return json.loads(json.dumps(item, default=self._decimal_default))

    def _decimal_default(self, obj):
        if isinstance(obj, Decimal):
            if obj == obj.to_integral_value():
                return int(obj)
            return float(obj)
        raise TypeError

    def _merge_dogs_with_images(self, dogs: List[DogDb], images: List[ImageDb]) -> List[DogDb]:
        dog_map = {dog.dog_id: dog for dog in dogs}
        for image in images:
            if image.dog_id in dog_map:
                dog_map[image.dog_id].images.append(image)
        return list(dog_map.values())


def get_shelter_db_client(app_config: AppConfig) -> ShelterDbClient:
    return ShelterDbClient(app_config=app_config)
