# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Unit tests for the Portainer API client.
"""
import pytest
import requests
from pdeploy.MODELS.deploy_config import DeployConfig
from pdeploy.MODELS.portainer_resources import ResourceControlUpdate
from pdeploy.PORTAINER.portainer_client import PortainerClient
from pdeploy.errors import ImageBuildError, PortainerAPIError

BASE = "http://portainer:9000/api/"


class TestPortainerClient:
    """Tests for PortainerClient."""

    def test_login_sets_bearer_token(self, fake_session):
        session = fake_session({("POST", "/auth"): (200, {"jwt": "abc"})})
        client = PortainerClient(BASE, session=session)

        assert client.login("admin", "secret") == "abc"
        assert session.headers["Authorization"] == "Bearer abc"
        method, url, kwargs = session.requests[0]
        assert url == BASE + "auth"
        assert kwargs["json"] == {"Username": "admin", "Password": "secret"}

    def test_login_failure_raises(self, fake_session):
        session = fake_session({("POST", "/auth"): (422, {"message": "Invalid credentials"})})
        client = PortainerClient(BASE, session=session)

        with pytest.raises(PortainerAPIError) as exc:
            client.login("admin", "wrong")
        assert exc.value.status_code == 422
        assert "Invalid credentials" in str(exc.value)
        assert "Authorization" not in session.headers

    def test_find_endpoint(self, fake_session):
        session = fake_session({("GET", "/endpoints"): (200, [
            {"Id": 1, "Name": "local", "URL": "unix:///var/run/docker.sock"},
            {"Id": 3, "Name": "edge"},
        ])})
        client = PortainerClient(BASE, session=session)

        assert client.find_endpoint("edge").id == 3
        assert client.find_endpoint("missing") is None

    def test_list_containers_includes_stopped(self, fake_session):
        session = fake_session({("GET", "/endpoints/1/docker/containers/json"): (200, [
            {"Id": "c1", "Names": ["/app"], "Image": "app:1.0.0", "State": "exited"},
        ])})
        client = PortainerClient(BASE, session=session)

        containers = client.list_containers(1)
        assert containers[0].has_name("app")
        assert session.requests[0][2]["params"] == {"all": 1}

    def test_list_images_with_untagged(self, fake_session):
        session = fake_session({("GET", "/endpoints/1/docker/images/json"): (200, [
            {"Id": "sha256:1", "RepoTags": None},
            {"Id": "sha256:2", "RepoTags": ["app:1.0.0"]},
        ])})
        images = PortainerClient(BASE, session=session).list_images(1)
        assert [i.has_tag("app:1.0.0") for i in images] == [False, True]

    def test_delete_container_forces(self, fake_session):
        session = fake_session({("DELETE", "/endpoints/1/docker/containers/c1"): (204, b"")})
        PortainerClient(BASE, session=session).delete_container(1, "c1")
        assert session.requests[0][2]["params"] == {"force": "true", "v": 1}

    def test_build_image_streams_output(self, fake_session, tmp_path):
        archive = tmp_path / "ctx.tar.gz"
        archive.write_bytes(b"tar-bytes")
        output = '{"stream":"Step 1/2 : FROM node"}\n{"stream":"\\n"}\n{"aux":{"ID":"sha256:x"}}\n'
        session = fake_session({("POST", "/endpoints/1/docker/build"): (200, output)})
        seen = []

        lines = PortainerClient(BASE, session=session).build_image(
            1, str(archive), "app:1.0.0", dockerfile="Dockerfile", on_output=seen.append
        )

        assert lines == ["Step 1/2 : FROM node"]
        assert seen == lines
        method, url, kwargs = session.requests[0]
        assert kwargs["params"] == {"dockerfile": "Dockerfile", "t": "app:1.0.0"}
        assert kwargs["headers"]["Content-Type"] == "application/x-tar"
        assert kwargs["data"] == b"tar-bytes"

    def test_build_image_error_in_stream(self, fake_session, tmp_path):
        archive = tmp_path / "ctx.tar.gz"
        archive.write_bytes(b"tar-bytes")
        output = ('{"stream":"Step 1/2"}\n'
                  '{"errorDetail":{"message":"COPY failed"},"error":"COPY failed"}\n')
        session = fake_session({("POST", "/endpoints/1/docker/build"): (200, output)})

        with pytest.raises(ImageBuildError, match="COPY failed"):
            PortainerClient(BASE, session=session).build_image(1, str(archive), "app:1.0.0")

    def test_create_container_returns_resource_control(self, fake_session):
        session = fake_session({("POST", "/endpoints/1/docker/containers/create"): (200, {
            "Id": "new", "Warnings": [], "Portainer": {"ResourceControl": {"Id": 7}},
        })})
        created = PortainerClient(BASE, session=session).create_container(
            1, "app", {"Image": "app:1.0.0"}
        )
        assert created.id == "new"
        assert created.resource_control_id == 7
        assert session.requests[0][2]["params"] == {"name": "app"}

    def test_update_resource_control(self, fake_session):
        session = fake_session({("PUT", "/resource_controls/7"): (200, {"Id": 7})})
        PortainerClient(BASE, session=session).update_resource_control(
            7, ResourceControlUpdate.shared_with_teams([1, 2])
        )
        assert session.requests[0][2]["json"] == {
            "AdministratorsOnly": False, "Public": False, "Teams": [1, 2], "Users": [],
        }

    def test_http_error_raises(self, fake_session):
        session = fake_session({("POST", "/endpoints/1/docker/containers/x/start"): (
            500, {"message": "port is already allocated"})})
        with pytest.raises(PortainerAPIError, match="port is already allocated"):
            PortainerClient(BASE, session=session).start_container(1, "x")

    def test_transport_error_raises(self):
        class BrokenSession:
            headers = {}
            proxies = {}

            def request(self, method, url, **kwargs):
                raise requests.ConnectionError("connection refused")

        with pytest.raises(PortainerAPIError, match="connection refused") as exc:
            PortainerClient(BASE, session=BrokenSession()).list_teams()
        assert exc.value.status_code is None

    def test_from_config_applies_proxy(self, fake_session):
        config = DeployConfig.model_validate({
            "portainerHost": "portainer", "portainerBaseUrl": "/api", "proxy": "http://proxy:8080",
        })
        session = fake_session()
        client = PortainerClient.from_config(config, session=session)
        assert client.base_url == BASE
        assert session.proxies == {"http": "http://proxy:8080", "https": "http://proxy:8080"}
