from .client import GenerationClient
from .transport import OpenAITransport, ServiceReply, ServiceRequest, Transport

__all__ = [
    "GenerationClient",
    "OpenAITransport",
    "ServiceReply",
    "ServiceRequest",
    "Transport",
]
