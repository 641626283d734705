"""Test configuration and fixtures."""

import json
import os

# Settings are read from the environment at import time, so set them first
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["SHELTER_TABLE_NAME"] = "shelter-test"
os.environ["SHELTER_IMAGES_BUCKET"] = "shelter-images-test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["POWERTOOLS_TRACE_DISABLED"] = "1"
os.environ["AWS_XRAY_SDK_ENABLED"] = "false"
os.environ["AWS_XRAY_CONTEXT_MISSING"] = "LOG_ERROR"

import pytest

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from shelter_common.config import AppConfig, NotifierConfig
from shelter_common.session import Role, Session
from catalog_lambda.handlers import CatalogService

from tests.fakes import FakeS3Client, InMemoryShelterDb

ADMIN_CLAIMS = {"sub": "admin-1", "email": "admin@refugio.cl", "cognito:groups": "admin"}
VISITOR_CLAIMS = {"sub": "user-1", "email": "vecino@correo.cl"}


@dataclass
class LambdaContextStub:
    function_name: str = "shelter-test"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:shelter-test"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"


@pytest.fixture
def lambda_context() -> LambdaContextStub:
    return LambdaContextStub()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def notifier_config() -> NotifierConfig:
    return NotifierConfig()


@pytest.fixture
def fake_db() -> InMemoryShelterDb:
    return InMemoryShelterDb()


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def catalog_service(app_config, fake_db, fake_s3) -> CatalogService:
    return CatalogService(app_config=app_config, db=fake_db, s3=fake_s3)


@pytest.fixture
def admin_session() -> Session:
    return Session(user_id="admin-1", email="admin@refugio.cl", role=Role.ADMIN)


@pytest.fixture
def visitor_session() -> Session:
    return Session(user_id="user-1", role=Role.VISITOR)


@pytest.fixture
def api_event() -> Callable[..., Dict[str, Any]]:
    """Build an API Gateway REST proxy event."""

    def _make(method: str, path: str, body: Any = None, claims: Optional[Dict[str, Any]] = None,
              headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        request_context: Dict[str, Any] = {
            "requestId": "c6af9ac6-7b61-11e6-9a41-93e8deadbeef",
            "stage": "test",
            "httpMethod": method,
            "path": path,
            "resourcePath": path,
            "identity": {"sourceIp": "127.0.0.1"},
        }
        if claims is not None:
            request_context["authorizer"] = {"claims": claims}
        all_headers = {"Content-Type": "application/json", "Origin": "https://refugio.example"}
        all_headers.update(headers or {})
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
        return {
            "resource": path,
            "path": path,
            "httpMethod": method,
            "headers": all_headers,
            "multiValueHeaders": {key: [value] for key, value in all_headers.items()},
            "queryStringParameters": None,
            "multiValueQueryStringParameters": None,
            "pathParameters": None,
            "stageVariables": None,
            "requestContext": request_context,
            "body": body,
            "isBase64Encoded": False,
        }

    return _make


def response_header(result: Dict[str, Any], name: str) -> Optional[str]:
    """Read a header from a resolver result, whichever header style it used."""
    for key, values in (result.get("multiValueHeaders") or {}).items():
        if key.lower() == name.lower():
            return values[0] if isinstance(values, list) else values
    for key, value in (result.get("headers") or {}).items():
        if key.lower() == name.lower():
            return value
    return None


def response_json(result: Dict[str, Any]) -> Any:
    return json.loads(result["body"])
