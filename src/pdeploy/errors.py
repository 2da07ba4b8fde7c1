"""
Error types raised while loading configuration and talking to Portainer.
"""
from typing import Optional


class DeployError(RuntimeError):
    """Raised when a deployment run hits a known error condition."""


class ConfigError(DeployError):
    """Raised for missing, malformed or incomplete configuration."""


class EndpointNotFoundError(DeployError):
    """Raised when no Portainer endpoint carries the configured name."""

    def __init__(self, endpoint_name: str):
        super().__init__(f"Endpoint {endpoint_name} not found.")
        self.endpoint_name = endpoint_name


class PortainerAPIError(DeployError):
    """
    Raised when a Portainer API request fails, either at the transport level
    or with a non-success HTTP status.
    """

    def __init__(self, method: str, url: str, status_code: Optional[int] = None, details: str = ""):
        if status_code is None:
            message = f"{method} {url} failed: {details}"
        else:
            message = f"{method} {url} failed with status {status_code}: {details}"
        super().__init__(message.rstrip(": "))
        self.method = method
        self.url = url
        self.status_code = status_code
        self.details = details


class ImageBuildError(DeployError):
    """Raised when the Docker engine reports an error in the build output."""
