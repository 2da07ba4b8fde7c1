"""
Readers for local package manifests that name and version the image.
"""
import json
import os
import tomllib
from typing import Optional

from ..MODELS.image_target import PackageManifest
from ..errors import ConfigError

PACKAGE_JSON = "package.json"
PYPROJECT_TOML = "pyproject.toml"


class PackageManifestReader:
    """
    Looks up package metadata in a project directory.
    package.json is checked first, then the [project] table of pyproject.toml.
    """
    def __init__(self, base_dir: str = "."):
        """
        :param base_dir: Directory holding the manifest files.
        """
        self.base_dir = base_dir

    def read(self) -> Optional[PackageManifest]:
        """
        Reads the first manifest found.

        :return: The manifest, or None if the directory has no usable manifest.
        :raises ConfigError: If package.json exists but is malformed or incomplete.
        """
        package_json = os.path.join(self.base_dir, PACKAGE_JSON)
        if os.path.exists(package_json):
            return self._read_package_json(package_json)

        pyproject = os.path.join(self.base_dir, PYPROJECT_TOML)
        if os.path.exists(pyproject):
            return self._read_pyproject(pyproject)

        return None

    def _read_package_json(self, path: str) -> PackageManifest:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        name, version = data.get("name"), data.get("version")
        if not name or not version:
            raise ConfigError(f"{path} must define both name and version")
        return PackageManifest(name=str(name), version=str(version), source=PACKAGE_JSON)

    def _read_pyproject(self, path: str) -> Optional[PackageManifest]:
        try:
            with open(path, 'rb') as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        project = data.get("project", {})
        name, version = project.get("name"), project.get("version")
        # Dynamic versions are resolved by the build backend, not readable here
        if not name or not version:
            return None
        return PackageManifest(name=str(name), version=str(version), source=PYPROJECT_TOML)
