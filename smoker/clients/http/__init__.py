"""HTTP service clients."""

from smoker.clients.http.rest import RestClient

__all__ = ["RestClient"]
