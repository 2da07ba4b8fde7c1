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
Parsers for the deployment configuration file and the key=value command line.
"""
import json
import os
import yaml
from typing import Any, Dict, Iterable, Mapping, Optional
from pydantic import ValidationError

from ..MODELS.deploy_config import DeployConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator
from ..errors import ConfigError

YAML_SUFFIXES = (".yml", ".yaml")


def parse_cli_args(args: Iterable[str]) -> Dict[str, str]:
    """
    Splits positional key=value arguments into a dictionary.

    :param args: Raw arguments such as ["config=deploy.json", "imageVersion=1.2.0"].
    :return: Mapping of keys to raw string values. Later keys win.
    :raises ConfigError: If an argument has no '=' or an empty key.
    """
    parsed = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"Invalid argument '{arg}', expected key=value")
        parsed[key] = value
    return parsed


def _coerce_override(value: str) -> Any:
    """
    Reads JSON objects and arrays, keeps everything else as a string.
    Scalars stay strings so versions like 1.10 are not turned into floats;
    validation coerces ports and flags.
    """
    if not value.lstrip().startswith(("{", "[")):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed JSON in override value {value!r}: {e}") from e


class ConfigParser:
    """
    Parser for deployment configuration files (JSON or YAML).
    """
    def __init__(self, context: Optional[Mapping[str, str]] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: Variables for ${VAR} interpolation. Defaults to os.environ.
        """
        self.context = dict(os.environ) if context is None else dict(context)

    def parse(self, config_path: str, overrides: Optional[Mapping[str, str]] = None) -> DeployConfig:
        """
        Parses a configuration file from a path.

        :param config_path: Path to the configuration file.
        :param overrides: Top-level keys to replace, as raw command line strings.
        :return: The validated configuration.
        :raises ConfigError: If the file is missing, unreadable or invalid.
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

        as_yaml = config_path.lower().endswith(YAML_SUFFIXES)
        return self.parse_from_string(content, as_yaml=as_yaml, overrides=overrides, source=config_path)

    def parse_from_string(self,
                          content: str,
                          as_yaml: bool = False,
                          overrides: Optional[Mapping[str, str]] = None,
                          source: str = "<string>") -> DeployConfig:
        """
        Parses configuration from a string.

        :param content: JSON or YAML text.
        :param as_yaml: Parse as YAML instead of JSON.
        :param overrides: Top-level keys to replace, as raw command line strings.
        :param source: Name used in error messages.
        :return: The validated configuration.
        """
        try:
            content = EnvironmentInterpolator.interpolate(content, self.context)
        except KeyError as e:
            raise ConfigError(f"Cannot interpolate {source}: {e.args[0]}") from e

        data = self._load(content, as_yaml, source)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config {source} must contain an object at the top level")

        for key, value in (overrides or {}).items():
            data[key] = _coerce_override(value)

        return self.build(data, source)

    def build(self, data: Dict[str, Any], source: str = "<dict>") -> DeployConfig:
        """
        Validates a raw configuration mapping.

        :param data: Configuration keyed by the file's key names.
        :param source: Name used in error messages.
        :return: The validated configuration.
        """
        try:
            return DeployConfig.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigError(f"Invalid config {source}: {problems}") from e

    def _load(self, content: str, as_yaml: bool, source: str) -> Any:
        if as_yaml:
            try:
                return yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise ConfigError(f"Malformed YAML in {source}: {e}") from e
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Malformed JSON in {source}: {e}") from e
