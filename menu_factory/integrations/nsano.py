"""Nsano USSD gateway."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from menu_factory.integrations.gateway import Gateway, Request


class NsanoRequest(BaseModel):
    """Mirrors the payload Nsano sends. Nsano has no session id or service code."""

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    # Doubles as the session id, so it must not be empty
    msisdn: str = Field(min_length=1)
    msg: str
    network: str


class NsanoResponse(BaseModel):
    """Response body Nsano expects.

    ``action`` is ``input`` to keep the session open and ``prompt`` to end it.
    """

    model_config = ConfigDict(frozen=True)

    action: str
    menus: str


class Nsano(Gateway[NsanoResponse]):
    name = "NSANO"

    def transform(self, raw_request: Any) -> Request:
        payload = self.parse(NsanoRequest, raw_request)
        return Request(
            phone_number=payload.msisdn,
            session_id=payload.msisdn,
            service_code=None,
            message=payload.msg,
            operator_id=payload.network,
        )

    def continue_with(self, message: str) -> NsanoResponse:
        return NsanoResponse(action="input", menus=message)

    def terminate_with(self, message: str) -> NsanoResponse:
        return NsanoResponse(action="prompt", menus=message)
