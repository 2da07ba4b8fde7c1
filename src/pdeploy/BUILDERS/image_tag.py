"""
Resolution of the image tag and container name for a deployment.
"""
from ..MODELS.deploy_config import DeployConfig
from ..MODELS.image_target import ImageTarget
from ..PARSERS.package_manifest import PackageManifestReader
from ..errors import ConfigError


def resolve_image_target(config: DeployConfig, base_dir: str = ".") -> ImageTarget:
    """
    Determines which image to build and which container to replace.

    A local package manifest supplies the version and the default image and
    container names; imageName and containerName from the configuration take
    precedence over it. Without a manifest, imageName and imageVersion must
    both be configured.

    :param config: The deployment configuration.
    :param base_dir: Directory searched for a package manifest.
    :return: The resolved target.
    :raises ConfigError: If no manifest exists and the image is not fully configured.
    """
    manifest = PackageManifestReader(base_dir).read()

    if manifest:
        name = config.image_name or manifest.name
        version = manifest.version
        default_container = manifest.name
    else:
        if not config.image_name or not config.image_version:
            raise ConfigError(
                "No package manifest found; imageName and imageVersion must be configured"
            )
        name = config.image_name
        version = config.image_version
        default_container = config.image_name

    return ImageTarget(
        name=name,
        version=version,
        container_name=config.container_name or default_container,
        manifest=manifest,
    )
