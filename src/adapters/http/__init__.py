"""HTTP adapters - Gateway and typed backend client."""

from .backend import BackendClient
from .gateway import HttpGateway

__all__ = ["BackendClient", "HttpGateway"]
