"""Protocol layer — update requests, responses, and the request pipeline."""

from diffyne.protocol.pipeline import RequestPipeline, RequestStage
from diffyne.protocol.request import ProtocolRequest
from diffyne.protocol.response import MountResult, ProtocolResponse

__all__ = [
    "MountResult",
    "ProtocolRequest",
    "ProtocolResponse",
    "RequestPipeline",
    "RequestStage",
]
