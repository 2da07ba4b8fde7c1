"""Pytest configuration and fixtures."""

import json
import tarfile

import pytest
import requests

from pdeploy.MODELS.portainer_resources import (
    CreatedContainer,
    DockerContainer,
    DockerImage,
    Endpoint,
    Team,
)


class FakePortainerClient:
    """
    In-memory stand-in for PortainerClient.
    Every call is recorded in `calls` as (operation, args...).
    """

    def __init__(self, endpoints=None, images=None, containers=None, teams=None,
                 resource_control_id=42):
        self.endpoints = [Endpoint(Id=1, Name="local")] if endpoints is None else endpoints
        self.images = images or []
        self.containers = containers or []
        self.teams = [Team(Id=1, Name="devs"), Team(Id=2, Name="ops")] if teams is None else teams
        self.resource_control_id = resource_control_id
        self.calls = []
        self.archive_members = []
        self.archive_path = None
        self.resource_updates = []

    def operations(self):
        return [call[0] for call in self.calls]

    def login(self, username, password):
        self.calls.append(("login", username))
        return "jwt-token"

    def find_endpoint(self, name):
        self.calls.append(("find_endpoint", name))
        return next((e for e in self.endpoints if e.name == name), None)

    def list_images(self, endpoint_id):
        self.calls.append(("list_images", endpoint_id))
        return list(self.images)

    def delete_image(self, endpoint_id, image):
        self.calls.append(("delete_image", image))
        self.images = [i for i in self.images if not i.has_tag(image)]

    def list_containers(self, endpoint_id):
        self.calls.append(("list_containers", endpoint_id))
        return list(self.containers)

    def delete_container(self, endpoint_id, container_id):
        self.calls.append(("delete_container", container_id))
        self.containers = [c for c in self.containers if c.id != container_id]

    def build_image(self, endpoint_id, archive_path, tag, dockerfile="Dockerfile", on_output=None):
        self.calls.append(("build_image", tag, dockerfile))
        self.archive_path = archive_path
        with tarfile.open(archive_path, "r:gz") as tar:
            self.archive_members = tar.getnames()
        self.images.append(DockerImage(Id="sha256:new", RepoTags=[tag]))
        return []

    def create_container(self, endpoint_id, name, body):
        self.calls.append(("create_container", name, body))
        container = DockerContainer(Id="new-container", Names=[f"/{name}"], Image=body["Image"])
        self.containers.append(container)
        portainer = None
        if self.resource_control_id is not None:
            portainer = {"ResourceControl": {"Id": self.resource_control_id}}
        return CreatedContainer(Id=container.id, Portainer=portainer)

    def list_teams(self):
        self.calls.append(("list_teams",))
        return list(self.teams)

    def update_resource_control(self, resource_control_id, update):
        self.calls.append(("update_resource_control", resource_control_id))
        self.resource_updates.append(update.to_payload())
        return {}

    def start_container(self, endpoint_id, container_id):
        self.calls.append(("start_container", container_id))


class FakeSession:
    """
    Minimal requests.Session replacement that answers from a route table.
    Routes map (METHOD, url suffix) to (status, body); body may be a dict,
    a list, bytes or a str.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.headers = {}
        self.proxies = {}
        self.requests = []

    def request(self, method, url, **kwargs):
        data = kwargs.get("data")
        if hasattr(data, "read"):
            kwargs["data"] = data.read()
        self.requests.append((method, url, kwargs))
        for (route_method, suffix), (status, body) in self.routes.items():
            if route_method == method and url.endswith(suffix):
                return make_response(status, body, url)
        return make_response(404, {"message": "not found"}, url)


def make_response(status, body, url=""):
    response = requests.Response()
    response.status_code = status
    response.url = url
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    response._content = body
    response._content_consumed = True
    response.encoding = "utf-8"
    return response


@pytest.fixture
def fake_client():
    """Factory for FakePortainerClient instances."""
    return FakePortainerClient


@pytest.fixture
def fake_session():
    """Factory for FakeSession instances."""
    return FakeSession


@pytest.fixture
def project_dir(tmp_path):
    """A small project directory to build from."""
    (tmp_path / "package.json").write_text(json.dumps({"name": "app", "version": "1.0.0"}))
    (tmp_path / "Dockerfile").write_text("FROM node:20\nCOPY . /app\n")
    (tmp_path / "index.js").write_text("console.log('hi');\n")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.js").write_text("module.exports = 1;\n")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    return tmp_path
