"""
Models for the Portainer and Docker Engine resources the deployer reads and writes.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class _ApiModel(BaseModel):
    """
    Base for API payloads: PascalCase keys on the wire, unknown keys ignored.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Endpoint(_ApiModel):
    """
    A Docker host registered in Portainer.
    """
    id: int = Field(alias="Id")
    name: str = Field(alias="Name")


class Team(_ApiModel):
    """
    A Portainer access-control group.
    """
    id: int = Field(alias="Id")
    name: str = Field(alias="Name")


class DockerImage(_ApiModel):
    """
    An image as listed by the Docker Engine.
    """
    id: str = Field(alias="Id")
    repo_tags: Optional[List[str]] = Field(default=None, alias="RepoTags")

    def has_tag(self, tag: str) -> bool:
        return tag in (self.repo_tags or [])


class DockerContainer(_ApiModel):
    """
    A container as listed by the Docker Engine.
    """
    id: str = Field(alias="Id")
    names: List[str] = Field(default_factory=list, alias="Names")
    image: str = Field(default="", alias="Image")

    def has_name(self, name: str) -> bool:
        # Docker reports names with a leading slash
        return f"/{name}" in self.names


class ResourceControl(_ApiModel):
    id: int = Field(alias="Id")


class PortainerMetadata(_ApiModel):
    resource_control: Optional[ResourceControl] = Field(default=None, alias="ResourceControl")


class CreatedContainer(_ApiModel):
    """
    Response of a container create request proxied through Portainer.
    Portainer attaches the resource control it created for the container.
    """
    id: str = Field(alias="Id")
    portainer: Optional[PortainerMetadata] = Field(default=None, alias="Portainer")
    warnings: Optional[List[str]] = Field(default=None, alias="Warnings")

    @property
    def resource_control_id(self) -> Optional[int]:
        if self.portainer and self.portainer.resource_control:
            return self.portainer.resource_control.id
        return None


class ResourceControlUpdate(_ApiModel):
    """
    Body of a resource control update.
    """
    administrators_only: bool = Field(default=False, alias="AdministratorsOnly")
    public: bool = Field(default=False, alias="Public")
    teams: List[int] = Field(default_factory=list, alias="Teams")
    users: List[int] = Field(default_factory=list, alias="Users")

    @classmethod
    def shared_with_teams(cls, team_ids: List[int]) -> "ResourceControlUpdate":
        """
        Ownership handed to the given teams: no users, not public, not admin-only.
        """
        return cls(administrators_only=False, public=False, teams=list(team_ids), users=[])

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)
