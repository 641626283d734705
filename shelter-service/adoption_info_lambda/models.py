from __future__ import annotations

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

class AdoptionInfoErrorKind(str, Enum):
    INVALID_BODY = "InvalidBody"
    MISSING_FIELDS = "MissingFields"
    INVALID_EMAIL = "InvalidEmail"
    FIELD_TOO_LONG = "FieldTooLong"

# User facing messages, in the shelter's locale
ERROR_MESSAGES = {
    AdoptionInfoErrorKind.INVALID_BODY: "Solicitud inválida",
    AdoptionInfoErrorKind.MISSING_FIELDS: "Faltan campos requeridos",
    AdoptionInfoErrorKind.INVALID_EMAIL: "Email inválido",
    AdoptionInfoErrorKind.FIELD_TOO_LONG: "Los campos exceden la longitud máxima",
}

SUCCESS_MESSAGE = "Gracias por tu interés. Te contactaremos pronto con la información de adopción."

class AdoptionInfoValidationError(ValueError):
    def __init__(self, kind: AdoptionInfoErrorKind):
        self.kind = kind
        self.message = ERROR_MESSAGES[kind]
        super().__init__(self.message)

class AdoptionInfoDeliveryError(Exception):
    """The email provider refused or failed the send; carries the provider's message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

class AdoptionInfoRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    name: str
    email: str
    shelter_address: str = Field(..., alias="shelterAddress")
