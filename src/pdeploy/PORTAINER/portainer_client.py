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
Portainer API client.
Covers authentication, endpoint and team lookup, resource controls, and the
Docker Engine API that Portainer proxies under endpoints/{id}/docker/.
"""

import json
from typing import Any, Callable, Dict, List, Optional

import requests

from ..MODELS.deploy_config import DeployConfig
from ..MODELS.portainer_resources import (
    CreatedContainer,
    DockerContainer,
    DockerImage,
    Endpoint,
    ResourceControlUpdate,
    Team,
)
from ..errors import ImageBuildError, PortainerAPIError

MAX_ERROR_DETAILS = 300


def _error_details(response: requests.Response) -> str:
    """Extract a short, single-line error description from a response."""
    text = response.text or ""
    try:
        payload = json.loads(text)
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        text = str(payload.get("message") or payload.get("details") or payload.get("err") or text)
    return text.strip().replace("\n", " ")[:MAX_ERROR_DETAILS]


class PortainerClient:
    """
    Client for a single Portainer instance.
    All requests share one session, so the token set by login() is sent
    with every later call.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 proxies: Optional[Dict[str, str]] = None):
        """
        Initialize the client.

        Args:
            base_url: API root, e.g. http://portainer:9000/api/
            session: Session to send requests with. A new one is created if omitted.
            proxies: requests proxy mapping applied to the session.
        """
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.session = session if session is not None else requests.Session()
        if proxies:
            self.session.proxies.update(proxies)

    @classmethod
    def from_config(cls, config: DeployConfig,
                    session: Optional[requests.Session] = None) -> "PortainerClient":
        """Create a client for the Portainer instance named in the configuration."""
        return cls(config.base_url, session=session, proxies=config.proxies())

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send a request and raise PortainerAPIError unless it succeeded."""
        url = self.base_url + path.lstrip("/")
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise PortainerAPIError(method, url, details=str(e)) from e

        if not response.ok:
            raise PortainerAPIError(method, url, response.status_code, _error_details(response))
        return response

    def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise PortainerAPIError(method, response.url or path, response.status_code,
                                    "response is not valid JSON") from e

    # Portainer

    def login(self, username: str, password: str) -> str:
        """
        Authenticate and attach the returned JWT to the session.

        Args:
            username: Portainer user
            password: Portainer password

        Returns:
            The JWT issued by Portainer.
        """
        data = self._json("POST", "auth", json={"Username": username, "Password": password})
        token = data.get("jwt") if isinstance(data, dict) else None
        if not token:
            raise PortainerAPIError("POST", self.base_url + "auth", details="no jwt in response")
        self.session.headers["Authorization"] = f"Bearer {token}"
        return token

    def list_endpoints(self) -> List[Endpoint]:
        return [Endpoint.model_validate(e) for e in self._json("GET", "endpoints")]

    def find_endpoint(self, name: str) -> Optional[Endpoint]:
        """Return the endpoint with exactly this name, if any."""
        return next((e for e in self.list_endpoints() if e.name == name), None)

    def list_teams(self) -> List[Team]:
        return [Team.model_validate(t) for t in self._json("GET", "teams")]

    def update_resource_control(self, resource_control_id: int,
                                update: ResourceControlUpdate) -> Dict[str, Any]:
        """
        Replace the access settings of a resource control.

        Args:
            resource_control_id: ID of the resource control to overwrite
            update: New owners and visibility flags

        Returns:
            The updated resource control as returned by Portainer.
        """
        return self._json("PUT", f"resource_controls/{resource_control_id}",
                          json=update.to_payload())

    # Docker Engine, proxied per endpoint

    def list_images(self, endpoint_id: int) -> List[DockerImage]:
        data = self._json("GET", f"endpoints/{endpoint_id}/docker/images/json")
        return [DockerImage.model_validate(i) for i in data]

    def delete_image(self, endpoint_id: int, image: str) -> None:
        self._request("DELETE", f"endpoints/{endpoint_id}/docker/images/{image}")

    def list_containers(self, endpoint_id: int) -> List[DockerContainer]:
        """List all containers on the endpoint, stopped ones included."""
        data = self._json("GET", f"endpoints/{endpoint_id}/docker/containers/json",
                          params={"all": 1})
        return [DockerContainer.model_validate(c) for c in data]

    def delete_container(self, endpoint_id: int, container_id: str) -> None:
        """Force-remove a container together with its anonymous volumes."""
        self._request("DELETE", f"endpoints/{endpoint_id}/docker/containers/{container_id}",
                      params={"force": "true", "v": 1})

    def build_image(self, endpoint_id: int, archive_path: str, tag: str,
                    dockerfile: str = "Dockerfile",
                    on_output: Optional[Callable[[str], None]] = None) -> List[str]:
        """
        Upload a build context and build an image on the endpoint.

        The engine answers with one JSON object per line. Progress lines are
        passed to on_output; an error line aborts the build.

        Args:
            endpoint_id: Target endpoint
            archive_path: Path to the gzipped build context tarball
            tag: Tag for the built image (name:version)
            dockerfile: Dockerfile path inside the build context
            on_output: Called with each progress line

        Returns:
            The progress lines reported by the engine.
        """
        with open(archive_path, "rb") as archive:
            response = self._request(
                "POST",
                f"endpoints/{endpoint_id}/docker/build",
                params={"dockerfile": dockerfile, "t": tag},
                data=archive,
                headers={"Content-Type": "application/x-tar"},
                stream=True,
            )
            try:
                return self._read_build_output(response, on_output)
            finally:
                response.close()

    def _read_build_output(self, response: requests.Response,
                           on_output: Optional[Callable[[str], None]]) -> List[str]:
        output = []
        for raw in response.iter_lines(decode_unicode=True):
            if not raw:
                continue
            try:
                message = json.loads(raw)
            except ValueError:
                message = {"stream": raw}
            if not isinstance(message, dict):
                continue

            if message.get("error") or message.get("errorDetail"):
                detail = message.get("errorDetail") or {}
                raise ImageBuildError(str(message.get("error") or detail.get("message")).strip())

            line = str(message.get("stream") or message.get("status") or "").rstrip()
            if line:
                output.append(line)
                if on_output:
                    on_output(line)
        return output

    def create_container(self, endpoint_id: int, name: str,
                         body: Dict[str, Any]) -> CreatedContainer:
        """
        Create (but do not start) a container.

        Args:
            endpoint_id: Target endpoint
            name: Container name
            body: Docker create payload (Image, ExposedPorts, HostConfig, ...)

        Returns:
            The created container, including Portainer's resource control.
        """
        data = self._json("POST", f"endpoints/{endpoint_id}/docker/containers/create",
                          params={"name": name}, json=body)
        return CreatedContainer.model_validate(data)

    def start_container(self, endpoint_id: int, container_id: str) -> None:
        self._request("POST", f"endpoints/{endpoint_id}/docker/containers/{container_id}/start")
