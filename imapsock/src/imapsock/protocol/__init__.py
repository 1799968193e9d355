"""Protocol layer: transports and the tagged command engine."""

from .engine import ProtocolEngine, RawResponse, TagGenerator
from .transport import LineStream, SocketStream

__all__ = ["LineStream", "ProtocolEngine", "RawResponse", "SocketStream", "TagGenerator"]
