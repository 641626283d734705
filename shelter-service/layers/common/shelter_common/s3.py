import boto3

from typing import Optional
from .config import AppConfig
from .observability import logger

class S3Client:
    def __init__(self, app_config: AppConfig):
        self.bucket_name = app_config.shelter_images_bucket
        self.endpoint_url = app_config.s3_endpoint
        self.public_base_url = app_config.images_public_base_url
        self.client = boto3.client("s3", endpoint_url=self.endpoint_url)

    def upload_object(self, s3_key: str, content: bytes, content_type: Optional[str] = None) -> str:
        logger.info(f"Uploading object to key: {s3_key}", size=len(content))

        params = {
            "Bucket": self.bucket_name,
            "Key": s3_key,
            "Body": content,
        }

        if content_type:
            params["ContentType"] = content_type

        self.client.put_object(**params)
        return s3_key

    def get_public_url(self, s3_key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{s3_key}"
        if self.endpoint_url:
            # Path-style addressing for local endpoints (SAM local, LocalStack)
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{s3_key}"
        return f"https://{self.bucket_name}.s3.amazonaws.com/{s3_key}"

    def delete_object(self, s3_key: str):
        logger.info(f"Deleting object with key: {s3_key}")
        self.client.delete_object(Bucket=self.bucket_name, Key=s3_key)

    def health_check(self):
        self.client.list_objects_v2(Bucket=self.bucket_name, MaxKeys=1)


def get_s3_client(app_config: AppConfig) -> S3Client:
    return S3Client(app_config=app_config)
