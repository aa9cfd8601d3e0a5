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

"""Build records handed to the post-build uploader."""

import dataclasses
import enum


class Result(enum.Enum):
    """Ordered outcome of a completed build, best first."""
    SUCCESS = 0
    UNSTABLE = 1
    FAILURE = 2
    NOT_BUILT = 3
    ABORTED = 4

    def is_worse_or_equal_to(self, other: 'Result') -> bool:
        return self.value >= other.value

    def is_better_or_equal_to(self, other: 'Result') -> bool:
        return self.value <= other.value

    @classmethod
    def from_name(cls, name: str) -> 'Result':
        """Parses a result name, case-insensitively."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f'Unknown build result: {name}') from None


@dataclasses.dataclass(frozen=True)
class ArtifactRef:
    """A file archived by a completed build.

    Attributes:
        file_name: base name of the archived file.
        path: path the file can be read from.
        relative_path: path relative to the archive root, used for display.
    """
    file_name: str
    path: str
    relative_path: str = ''

    @property
    def display_path(self) -> str:
        return self.relative_path or self.file_name


@dataclasses.dataclass
class Build:
    """A completed build as seen by post-build steps.

    Attributes:
        number: sequence number of the build within its project.
        result: the result of the build steps run so far.
        artifacts: the finalized list of archived artifacts.
        actions: display actions attached to the build.
    """
    number: int
    result: Result
    artifacts: list[ArtifactRef] = dataclasses.field(default_factory=list)
    actions: list = dataclasses.field(default_factory=list)

    def get_actions(self, action_type: type) -> list:
        """Returns the attached actions of the given type, in attach order."""
        return [action for action in self.actions if isinstance(action, action_type)]

    def add_action(self, action):
        self.actions.append(action)
