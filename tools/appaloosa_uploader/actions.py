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

"""Upload receipts attached to builds and their project-level display."""

import copy
import dataclasses
from typing import Any, Iterable, Optional, Self

from build_record import Build
from build_record import Result


@dataclasses.dataclass
class UploadReceipt:
    """Record of a package uploaded to Appaloosa by a build.

    Attributes:
        file_name: name of the uploaded package.
        display_path: path of the package within the build archive.
        update_id: identifier of the Appaloosa update created for the package.
        application_id: identifier of the Appaloosa application updated.
        uploaded_at: ISO 8601 time the upload completed.
        details: remaining fields of the published update.
    """
    file_name: str
    display_path: str
    update_id: Optional[str] = None
    application_id: Optional[str] = None
    uploaded_at: str = ''
    details: dict[str, Any] = dataclasses.field(default_factory=dict)

    def copy(self) -> Self:
        """Returns an independent copy of the receipt."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        fields = {field.name for field in dataclasses.fields(cls)}
        return cls(**{name: value for name, value in data.items() if name in fields})


def project_display_actions(builds: Iterable[Build]) -> list[UploadReceipt]:
    """Returns copies of the receipts of the latest successful build having some.

    Builds are scanned from the highest build number down, whatever the order
    they are given in. Builds worse than SUCCESS are skipped.
    """
    successful = [build for build in builds if build.result.is_better_or_equal_to(Result.SUCCESS)]
    for build in sorted(successful, key=lambda build: build.number, reverse=True):
        receipts = build.get_actions(UploadReceipt)
        if receipts:
            return [receipt.copy() for receipt in receipts]
    return []
