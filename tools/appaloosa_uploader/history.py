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

"""Build history of a project, kept in a JSON file."""

import json
import logging
import os

from actions import UploadReceipt
from build_record import Build
from build_record import Result


class BuildHistory:
    """Results and upload receipts of the builds of a project.

    Archived artifacts are not recorded, only what the project page shows.
    """

    def __init__(self, path: str):
        self._path = path

    def load(self) -> list[Build]:
        """Returns the recorded builds, oldest first."""
        if not os.path.exists(self._path):
            return []
        with open(self._path, 'r', encoding='utf8') as reader:
            try:
                records = json.load(reader)
            except json.JSONDecodeError as e:
                raise ValueError(f'Corrupted build history {self._path}: {e}') from e

        builds = []
        for record in records:
            build = Build(record['number'], Result.from_name(record['result']))
            for receipt in record.get('receipts', []):
                build.add_action(UploadReceipt.from_dict(receipt))
            builds.append(build)
        return sorted(builds, key=lambda build: build.number)

    def next_build_number(self) -> int:
        return max((build.number for build in self.load()), default=0) + 1

    def record(self, build: Build):
        """Adds build to the history, replacing a build with the same number."""
        builds = [recorded for recorded in self.load() if recorded.number != build.number]
        builds.append(build)
        builds.sort(key=lambda build: build.number)

        records = [
            {
                'number': recorded.number,
                'result': recorded.result.name,
                'receipts': [receipt.to_dict() for receipt in recorded.get_actions(UploadReceipt)],
            }
            for recorded in builds
        ]
        parent = os.path.dirname(self._path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(self._path, 'w', encoding='utf8') as writer:
            writer.write(json.dumps(records, sort_keys=True, indent=2))
        logging.info('Recorded build #%d in %s', build.number, self._path)
