"""Hubtel USSD gateway."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from menu_factory.integrations.gateway import Gateway, Request


class HubtelRequest(BaseModel):
    """Mirrors the JSON object Hubtel sends for each USSD step.

    Attributes:
        mobile: Phone number of the user
        session_id: Session identifier, stable until the session ends
        service_code: The application's USSD code
        type: Initiation, Response, Release or Timeout (not used by the engine)
        message: Most recent input. On Initiation this is the USSD code itself
        operator: Mobile operator of the user
        sequence: Position of the message in the session (not used)
        client_state: Data echoed from the previous response (not used)
    """

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    mobile: str = Field(alias="Mobile")
    session_id: str = Field(alias="SessionId", min_length=1)
    service_code: str = Field(alias="ServiceCode")
    type: Optional[str] = Field(default=None, alias="Type")
    message: str = Field(alias="Message")
    operator: str = Field(alias="Operator")
    sequence: Optional[str] = Field(default=None, alias="Sequence")
    client_state: Optional[str] = Field(default=None, alias="ClientState")


class HubtelResponse(BaseModel):
    """Response body Hubtel expects.

    ``Type`` is ``Response`` to keep the session open and ``Release`` to end it.
    """

    model_config = ConfigDict(frozen=True)

    Type: str
    Message: str


class Hubtel(Gateway[HubtelResponse]):
    name = "HUBTEL"

    def transform(self, raw_request: Any) -> Request:
        payload = self.parse(HubtelRequest, raw_request)
        return Request(
            phone_number=payload.mobile,
            session_id=payload.session_id,
            service_code=payload.service_code,
            message=payload.message,
            operator_id=payload.operator,
        )

    def continue_with(self, message: str) -> HubtelResponse:
        return HubtelResponse(Type="Response", Message=message)

    def terminate_with(self, message: str) -> HubtelResponse:
        return HubtelResponse(Type="Release", Message=message)
