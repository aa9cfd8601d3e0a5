# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Archived artifacts of a build and the mobile packages among them."""

import glob
import logging
import os

from build_record import ArtifactRef

# Suffixes are matched literally, case included.
MOBILE_PACKAGE_SUFFIXES = ('.ipa', '.apk')


def is_mobile_package(file_name: str) -> bool:
    """Returns true if the file is an iOS or Android application package."""
    return file_name.endswith(MOBILE_PACKAGE_SUFFIXES)


def mobile_packages(artifacts: list[ArtifactRef]) -> list[ArtifactRef]:
    """Returns the artifacts that can be uploaded, keeping their order."""
    return [artifact for artifact in artifacts if is_mobile_package(artifact.file_name)]


def find_archived_artifacts(archive_dir: str) -> list[ArtifactRef]:
    """Lists every file archived under archive_dir, sorted by relative path."""
    artifacts = []
    for path in glob.glob(os.path.join(archive_dir, '**', '*'), recursive=True,
                          include_hidden=True):
        if os.path.isdir(path):
            continue
        artifacts.append(ArtifactRef(
            os.path.basename(path),
            path,
            _get_relative_path(archive_dir, path),
        ))
    artifacts.sort(key=lambda artifact: artifact.relative_path)
    logging.info('Found %d archived file(s) in %s', len(artifacts), archive_dir)
    return artifacts


def _get_relative_path(dir: str, path: str) -> str:
    """Returns the relative path from dir, falls back to basename on error."""
    try:
        return os.path.relpath(path, dir)
    except ValueError as e:
        logging.exception("Error calculating relative path: %s", e)
        return os.path.basename(path)
