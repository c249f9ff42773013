"""Africa's Talking USSD gateway."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from menu_factory.integrations.gateway import Gateway, Request

INPUT_SEPARATOR = "*"


class AfricasTalkingRequest(BaseModel):
    """Mirrors the callback payload Africa's Talking posts for each USSD step.

    ``text`` accumulates every input of the session joined with ``*``; it is
    empty when the user first dials the service code.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    phone_number: str = Field(alias="phoneNumber")
    session_id: str = Field(alias="sessionId", min_length=1)
    service_code: str = Field(alias="serviceCode")
    text: str
    network_code: str = Field(alias="networkCode")


class AfricasTalking(Gateway[str]):
    """Responses are plain strings prefixed with ``CON`` or ``END``."""

    name = "AFRICAS_TALKING"

    def transform(self, raw_request: Any) -> Request:
        payload = self.parse(AfricasTalkingRequest, raw_request)
        return Request(
            phone_number=payload.phone_number,
            session_id=payload.session_id,
            service_code=payload.service_code,
            message=latest_input(payload.text),
            operator_id=payload.network_code,
        )

    def continue_with(self, message: str) -> str:
        return f"CON {message}"

    def terminate_with(self, message: str) -> str:
        return f"END {message}"


def latest_input(text: str) -> str:
    """Reduce ``*``-joined input history to its most recent token."""
    if not text:
        return text
    return text.split(INPUT_SEPARATOR)[-1]
