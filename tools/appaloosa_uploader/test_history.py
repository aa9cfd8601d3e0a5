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


"""Unit tests for history."""

import os
import tempfile
import unittest

from actions import UploadReceipt
from build_record import ArtifactRef
from build_record import Build
from build_record import Result
from history import BuildHistory


class BuildHistoryTest(unittest.TestCase):
    """A unit test class for the build history file."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.temp_dir.name, 'logs', 'builds.json')
        self.history = BuildHistory(self.path)

    def tearDown(self):
        self.temp_dir.cleanup()
        return super().tearDown()

    def test_missing_file_is_empty_history(self):
        self.assertEqual(self.history.load(), [])
        self.assertEqual(self.history.next_build_number(), 1)

    def test_record_and_load(self):
        """Results and receipts survive a round trip, artifacts are not kept."""
        build = Build(2, Result.SUCCESS, [ArtifactRef('app.ipa', '/dist/app.ipa')])
        build.add_action(UploadReceipt('app.ipa', 'app.ipa', '10', '20', '2026-10-19T10:00:00',
                                       {'version': '1.0'}))
        self.history.record(build)
        self.history.record(Build(1, Result.FAILURE))

        builds = self.history.load()

        self.assertEqual([b.number for b in builds], [1, 2])
        self.assertEqual(builds[0].result, Result.FAILURE)
        self.assertEqual(builds[0].actions, [])
        self.assertEqual(builds[1].artifacts, [])
        self.assertEqual(builds[1].get_actions(UploadReceipt), build.get_actions(UploadReceipt))
        self.assertEqual(self.history.next_build_number(), 3)

    def test_record_replaces_same_number(self):
        self.history.record(Build(1, Result.UNSTABLE))
        self.history.record(Build(1, Result.SUCCESS))
        builds = self.history.load()
        self.assertEqual(len(builds), 1)
        self.assertEqual(builds[0].result, Result.SUCCESS)

    def test_corrupted_file(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, 'w', encoding='utf8') as writer:
            writer.write('{not json')
        with self.assertRaises(ValueError):
            self.history.load()


if __name__ == '__main__':
    unittest.main()
