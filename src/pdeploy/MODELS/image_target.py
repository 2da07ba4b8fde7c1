"""
Models for the image being built and the package metadata it is derived from.
"""
from typing import Optional
from pydantic import BaseModel


class PackageManifest(BaseModel):
    """
    Name and version read from a local package manifest (package.json, pyproject.toml).
    """
    name: str
    version: str
    source: str


class ImageTarget(BaseModel):
    """
    The image tag to build and the container name to deploy it under.
    """
    name: str
    version: str
    container_name: str
    manifest: Optional[PackageManifest] = None

    @property
    def tag(self) -> str:
        return f"{self.name}:{self.version}"
