"""Model transport clients."""

from coachlix.clients.base import ModelTransport, ModelTransportError

__all__ = ["ModelTransport", "ModelTransportError"]
