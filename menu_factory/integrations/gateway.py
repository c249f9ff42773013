"""Gateway capability: the boundary between carrier wire formats and the engine.

An adapter parses a carrier-specific request into a normalized ``Request`` and
formats "continue" and "terminate" responses in the carrier's shape. The
engine treats the response shape as opaque.
"""
from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from menu_factory.exceptions import MalformedGatewayRequest

ResponseT = TypeVar("ResponseT")
PayloadT = TypeVar("PayloadT", bound=BaseModel)


class Request(BaseModel):
    """Normalized request. Every gateway adapter marshals into this shape.

    Attributes:
        phone_number: Phone number of the user interacting with the menu
        session_id: Stable identifier of one dialog session, supplied by the gateway
        service_code: The dialed application code, when the carrier sends it
        message: Most recent single user input (empty on the first request)
        operator_id: Mobile operator of the user, when the carrier sends it
    """

    model_config = ConfigDict(frozen=True)

    phone_number: str
    session_id: str = Field(min_length=1)
    service_code: Optional[str] = None
    message: str = ""
    operator_id: Optional[str] = None


class Gateway(ABC, Generic[ResponseT]):
    """Carrier adapter interface."""

    name: str = "GATEWAY"

    @abstractmethod
    def transform(self, raw_request: Any) -> Request:
        """Map a carrier payload to a normalized Request.

        Raises:
            MalformedGatewayRequest: If required fields are missing or invalid
        """

    @abstractmethod
    def continue_with(self, message: str) -> ResponseT:
        """Format a response that keeps the session open."""

    @abstractmethod
    def terminate_with(self, message: str) -> ResponseT:
        """Format a response that ends the session."""

    def parse(self, model: Type[PayloadT], raw_request: Any) -> PayloadT:
        """Validate a raw payload against the carrier's request model.

        Args:
            model: Pydantic model mirroring the carrier request
            raw_request: Mapping received from the carrier

        Returns:
            Validated carrier request

        Raises:
            MalformedGatewayRequest: If validation fails
        """
        if not isinstance(raw_request, Mapping):
            raise MalformedGatewayRequest(
                self.name, f"expected a mapping, got {type(raw_request).__name__}"
            )
        try:
            return model.model_validate(dict(raw_request))
        except ValidationError as e:
            missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise MalformedGatewayRequest(
                self.name,
                f"invalid or missing fields: {', '.join(missing)}",
                original_exception=e,
            ) from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
