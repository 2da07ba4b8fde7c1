"""
The individual steps of a deployment run.

Every step receives the shared DeployContext, talks to Portainer through the
context's client and records what it did on the context's state. Steps never
catch API errors; a failure ends the run.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Tuple

from ..BUILDERS.build_context import BuildContext, BuildContextFilter
from ..BUILDERS.image_tag import resolve_image_target
from ..MODELS.deploy_config import DeployConfig
from ..MODELS.deployment_state import DeploymentState
from ..MODELS.portainer_resources import ResourceControlUpdate
from ..PORTAINER.portainer_client import PortainerClient
from ..UTILS import console
from ..errors import DeployError, EndpointNotFoundError

CredentialsProvider = Callable[[], Tuple[str, str]]


@dataclass
class DeployContext:
    """Everything a step needs: configuration, API client and results so far."""

    config: DeployConfig
    client: PortainerClient
    credentials: CredentialsProvider
    base_dir: str = "."
    state: DeploymentState = field(default_factory=DeploymentState)


def authenticate(ctx: DeployContext) -> None:
    username, password = ctx.credentials()
    ctx.state.token = ctx.client.login(username, password)
    console.success("Successfully logged into portainer.")


def resolve_endpoint(ctx: DeployContext) -> None:
    name = ctx.config.endpoint_name
    endpoint = ctx.client.find_endpoint(name)
    if endpoint is None:
        raise EndpointNotFoundError(name)
    ctx.state.endpoint_id = endpoint.id
    console.success(f"Successfully found endpoint named {name} with ID {endpoint.id}.")


def resolve_image(ctx: DeployContext) -> None:
    target = resolve_image_target(ctx.config, ctx.base_dir)
    ctx.state.target = target
    source = target.manifest.source if target.manifest else "configuration"
    console.info(f"Deploying image {target.tag} as container {target.container_name} (from {source}).")


def remove_old_image(ctx: DeployContext) -> None:
    """
    Deletes an existing image with the target tag when overrideOldImage is set.
    Containers using the image are force-deleted first, since the engine
    refuses to remove an image that is still referenced.
    """
    if not ctx.config.override_old_image:
        return

    client, endpoint_id, tag = ctx.client, ctx.state.endpoint_id, ctx.state.target.tag
    console.info(f"Checking if images with tag {tag} already exists.")
    old_image = next((img for img in client.list_images(endpoint_id) if img.has_tag(tag)), None)
    if old_image is None:
        console.success(f"No images with tag {tag} found.")
        return

    console.warn(f"Found image with tag {tag}.")
    users = [c for c in client.list_containers(endpoint_id) if c.image == tag]
    console.warn(f"Found {len(users)} containers using image {tag}.")
    for container in users:
        client.delete_container(endpoint_id, container.id)
        ctx.state.removed_containers.append(container.id)
        console.success(f"Successfully deleted container with Id {container.id}.")

    client.delete_image(endpoint_id, tag)
    ctx.state.removed_image = tag
    console.success(f"Successfully deleted image {tag}.")


def build_image(ctx: DeployContext) -> None:
    """
    Packs the build context, uploads it and builds the image remotely.
    The temporary archive is removed once the upload has finished.
    """
    build_context = BuildContext(BuildContextFilter.from_config(ctx.config), ctx.base_dir)
    files = build_context.collect_files()
    ctx.state.context_files = files
    tag = ctx.state.target.tag

    with build_context.temporary_archive(files) as archive_path:
        ctx.state.archive_path = archive_path
        console.success(
            f"Successfully created build context tar and temporarily stored it at {archive_path}."
        )
        console.info(f"Start building image {tag} remotely.")
        ctx.client.build_image(
            ctx.state.endpoint_id,
            archive_path,
            tag,
            dockerfile=ctx.config.dockerfile,
            on_output=console.info,
        )
        console.success(f"Successfully build image {tag} remotely.")

    console.success(f"Successfully deleted temporary build context tar at {archive_path}.")


def remove_old_container(ctx: DeployContext) -> None:
    client, endpoint_id = ctx.client, ctx.state.endpoint_id
    name = ctx.state.target.container_name
    old = next((c for c in client.list_containers(endpoint_id) if c.has_name(name)), None)
    if old is None:
        return

    console.info(f"Container with name {name} already exists.")
    client.delete_container(endpoint_id, old.id)
    ctx.state.removed_containers.append(old.id)
    console.success(f"Successfully deleted container with Id {old.id}.")


def container_body(config: DeployConfig, tag: str) -> Dict[str, Any]:
    """
    Builds the Docker create payload for the new container.
    """
    body: Dict[str, Any] = {"Image": tag}
    if config.exposed_ports is not None:
        body["ExposedPorts"] = config.exposed_ports
    if config.host_config is not None:
        body["HostConfig"] = config.host_config
    return body


def create_container(ctx: DeployContext) -> None:
    target = ctx.state.target
    created = ctx.client.create_container(
        ctx.state.endpoint_id,
        target.container_name,
        container_body(ctx.config, target.tag),
    )
    ctx.state.container_id = created.id
    ctx.state.resource_control_id = created.resource_control_id
    for warning in created.warnings or []:
        console.warn(warning)
    console.success(f"Successfully created container with Id {created.id}.")


def assign_teams(ctx: DeployContext) -> None:
    """
    Hands ownership of the new container to every team.
    Existing owners are overwritten, not merged.
    """
    if ctx.state.resource_control_id is None:
        raise DeployError(
            f"Portainer returned no resource control for container {ctx.state.container_id}"
        )

    teams = ctx.client.list_teams()
    ctx.state.team_ids = [team.id for team in teams]
    ctx.client.update_resource_control(
        ctx.state.resource_control_id,
        ResourceControlUpdate.shared_with_teams(ctx.state.team_ids),
    )
    team_names = ", ".join(team.name for team in teams)
    console.success(f"Successfully promoted team {team_names} to the owner of the container.")


def start_container(ctx: DeployContext) -> None:
    container_id = ctx.state.container_id
    ctx.client.start_container(ctx.state.endpoint_id, container_id)
    ctx.state.started = True
    console.success(f"Successfully started container with Id {container_id}.")
