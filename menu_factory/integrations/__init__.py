"""Gateway capability and reference carrier adapters."""

from menu_factory.integrations.africas_talking import AfricasTalking, AfricasTalkingRequest
from menu_factory.integrations.gateway import Gateway, Request
from menu_factory.integrations.hubtel import Hubtel, HubtelRequest, HubtelResponse
from menu_factory.integrations.nsano import Nsano, NsanoRequest, NsanoResponse

__all__ = [
    "Gateway",
    "Request",
    "AfricasTalking",
    "AfricasTalkingRequest",
    "Hubtel",
    "HubtelRequest",
    "HubtelResponse",
    "Nsano",
    "NsanoRequest",
    "NsanoResponse",
]
