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
Build context selection and packaging.
Selects the top-level entries of a project directory and packs them into a
gzipped tarball that the Docker Engine accepts as a build context.
"""

import os
import tarfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterator, List, Optional

from ..MODELS.deploy_config import DeployConfig

DIST_DIR = "dist"
ARCHIVE_NAME = "build-ctx-tmp.tar.gz"


class FilterMode(str, Enum):
    """How the configured entries are applied to the directory listing."""

    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"


@dataclass(frozen=True)
class BuildContextFilter:
    """
    Filter over top-level directory entries.

    Whitelist mode keeps only the listed entries, blacklist mode drops them.
    """

    mode: FilterMode
    entries: FrozenSet[str]

    @classmethod
    def from_config(cls, config: DeployConfig) -> "BuildContextFilter":
        """
        Resolves the filter once from configuration.
        A configured whitelist always wins over a blacklist.
        """
        if config.build_ctx_whitelist is not None:
            return cls(FilterMode.WHITELIST, frozenset(config.build_ctx_whitelist))
        return cls(FilterMode.BLACKLIST, frozenset(config.build_ctx_blacklist or []))

    def accepts(self, entry: str) -> bool:
        if self.mode is FilterMode.WHITELIST:
            return entry in self.entries
        return entry not in self.entries


class BuildContext:
    """
    Collects and archives the files sent to the remote engine for an image build.
    """

    def __init__(self, file_filter: BuildContextFilter, base_dir: str = "."):
        """
        Initialize the build context.

        Args:
            file_filter: Filter applied to the top-level entries of base_dir.
            base_dir: Project directory to package.
        """
        self.file_filter = file_filter
        self.base_dir = base_dir
        self.archive_path = os.path.join(base_dir, DIST_DIR, ARCHIVE_NAME)

    def collect_files(self) -> List[str]:
        """
        Lists the top-level entries that belong to the build context.

        Returns:
            Sorted entry names relative to base_dir.
        """
        return sorted(
            entry for entry in os.listdir(self.base_dir) if self.file_filter.accepts(entry)
        )

    def create_archive(self, file_names: Optional[List[str]] = None) -> str:
        """
        Writes the gzipped build context tarball under dist/.

        Args:
            file_names: Entries to include. Defaults to collect_files().

        Returns:
            Path to the written archive.
        """
        if file_names is None:
            file_names = self.collect_files()

        os.makedirs(os.path.dirname(self.archive_path), exist_ok=True)
        own_name = os.path.relpath(self.archive_path, self.base_dir).replace(os.sep, "/")

        def skip_archive(member: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
            # dist/ may itself be part of the context
            return None if member.name == own_name else member

        with tarfile.open(self.archive_path, "w:gz") as tar:
            for name in file_names:
                tar.add(
                    os.path.join(self.base_dir, name),
                    arcname=name,
                    recursive=True,
                    filter=skip_archive,
                )
        return self.archive_path

    @contextmanager
    def temporary_archive(self, file_names: Optional[List[str]] = None) -> Iterator[str]:
        """
        Creates the archive and removes it again when the block exits.

        Args:
            file_names: Entries to include. Defaults to collect_files().

        Yields:
            Path to the archive.
        """
        path = self.create_archive(file_names)
        try:
            yield path
        finally:
            if os.path.exists(path):
                os.remove(path)
