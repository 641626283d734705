import os
import re

import boto3

from botocore.exceptions import BotoCoreError, ClientError
from jinja2 import Environment, FileSystemLoader, select_autoescape
from typing import Any, Dict, Optional
from typing_extensions import Protocol

from adoption_info_lambda.models import AdoptionInfoDeliveryError, AdoptionInfoErrorKind, AdoptionInfoRequest
from adoption_info_lambda.models import AdoptionInfoValidationError, SUCCESS_MESSAGE
from shelter_common.config import NotifierConfig
from shelter_common.observability import logger, tracer

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255


def utf16_length(value: str) -> int:
    """Length in UTF-16 code units, as the web form counts it."""
    return len(value.encode("utf-16-le")) // 2

_templates_dir = os.path.join(os.path.dirname(__file__), "templates")
_jinja_env = Environment(
    loader=FileSystemLoader(_templates_dir),
    autoescape=select_autoescape(["html", "xml"]),
)


def parse_adoption_info_request(body: Any) -> AdoptionInfoRequest:
    """Validate a contact request, stopping at the first failing rule.

    Order matters: missing fields, then the email shape, then the length
    limits. Nothing is sent anywhere before all three pass.
    """
    if not isinstance(body, dict):
        raise AdoptionInfoValidationError(AdoptionInfoErrorKind.INVALID_BODY)

    name = body.get("name")
    email = body.get("email")
    shelter_address = body.get("shelterAddress")

    if not all(isinstance(value, str) and value for value in (name, email, shelter_address)):
        raise AdoptionInfoValidationError(AdoptionInfoErrorKind.MISSING_FIELDS)

    if not EMAIL_PATTERN.fullmatch(email):
        raise AdoptionInfoValidationError(AdoptionInfoErrorKind.INVALID_EMAIL)

    if utf16_length(name) > MAX_NAME_LENGTH or utf16_length(email) > MAX_EMAIL_LENGTH:
        raise AdoptionInfoValidationError(AdoptionInfoErrorKind.FIELD_TOO_LONG)

    return AdoptionInfoRequest(name=name, email=email, shelter_address=shelter_address)


def render_adoption_info(template_name: str = "adoption_info.html", **context) -> str:
    return _jinja_env.get_template(template_name).render(**context)


class AdoptionInfoSender(Protocol):
    def send(self, request: AdoptionInfoRequest) -> Dict[str, Any]:
        ...


class LogAdoptionInfoSender:
    """Records the request in the logs for manual follow-up by the shelter staff."""

    def send(self, request: AdoptionInfoRequest) -> Dict[str, Any]:
        logger.info(
            "Adoption info request received",
            name=request.name,
            email=request.email,
            shelter_address=request.shelter_address
        )
        return {"success": True, "message": SUCCESS_MESSAGE}


class SesAdoptionInfoSender:
    def __init__(self, config: NotifierConfig):
        self.sender = config.adoption_info_sender
        self.subject = config.adoption_info_subject
        self.shelter_name = config.shelter_name
        self.client = boto3.client("sesv2", endpoint_url=config.ses_endpoint)

    @tracer.capture_method
    def send(self, request: AdoptionInfoRequest) -> Dict[str, Any]:
        html = render_adoption_info(
            subject=self.subject,
            name=request.name,
            shelter_address=request.shelter_address,
            shelter_name=self.shelter_name
        )
        text = (
            f"Hola {request.name}, gracias por tu interés en adoptar. "
            f"Te esperamos en {request.shelter_address}. {self.shelter_name}"
        )

        try:
            resp = self.client.send_email(
                FromEmailAddress=self.sender,
                Destination={"ToAddresses": [request.email]},
                Content={
                    "Simple": {
                        "Subject": {"Data": self.subject, "Charset": "UTF-8"},
                        "Body": {
                            "Html": {"Data": html, "Charset": "UTF-8"},
                            "Text": {"Data": text, "Charset": "UTF-8"},
                        },
                    }
                },
            )
        except ClientError as e:
            message = e.response.get("Error", {}).get("Message") or str(e)
            logger.exception("Adoption info email rejected by SES", error=message)
            raise AdoptionInfoDeliveryError(message) from e
        except BotoCoreError as e:
            logger.exception("Adoption info email could not reach SES", error=str(e))
            raise AdoptionInfoDeliveryError(str(e)) from e

        logger.info("Adoption info email sent", message_id=resp.get("MessageId"))
        return {key: value for key, value in resp.items() if key != "ResponseMetadata"}


def get_sender(config: NotifierConfig) -> AdoptionInfoSender:
    if config.adoption_info_delivery == "email":
        return SesAdoptionInfoSender(config)
    return LogAdoptionInfoSender()


class AdoptionInfoNotifier:

    def __init__(self, config: NotifierConfig, sender: Optional[AdoptionInfoSender] = None):
        self.config = config
        self.sender: AdoptionInfoSender = sender or get_sender(config)

    def handle(self, body: Any) -> Dict[str, Any]:
        request = parse_adoption_info_request(body)
        return self.sender.send(request)
