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


"""Unit tests for artifacts."""

import os
import tempfile
import unittest

from artifacts import MOBILE_PACKAGE_SUFFIXES
from artifacts import find_archived_artifacts
from artifacts import is_mobile_package
from artifacts import mobile_packages
from build_record import ArtifactRef


class ArtifactsTest(unittest.TestCase):
    """A unit test class for archived artifacts."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.archive_dir = self.temp_dir.name

    def tearDown(self):
        self.temp_dir.cleanup()
        return super().tearDown()

    def _create_fake_file(self, relative_path: str):
        path = os.path.join(self.archive_dir, relative_path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write('fake package')

    def test_suffixes(self):
        self.assertEqual(MOBILE_PACKAGE_SUFFIXES, ('.ipa', '.apk'))

    def test_is_mobile_package_is_case_sensitive(self):
        """Only lower case .ipa and .apk suffixes match."""
        self.assertTrue(is_mobile_package('app.ipa'))
        self.assertTrue(is_mobile_package('app-release.apk'))
        self.assertFalse(is_mobile_package('App.IPA'))
        self.assertFalse(is_mobile_package('app.Apk'))
        self.assertFalse(is_mobile_package('app.ipa.dSYM.zip'))
        self.assertFalse(is_mobile_package('ipa'))

    def test_mobile_packages_keeps_order(self):
        artifacts = [
            ArtifactRef('z.apk', '/z.apk'),
            ArtifactRef('readme.md', '/readme.md'),
            ArtifactRef('a.ipa', '/a.ipa'),
        ]
        self.assertEqual(
            [artifact.file_name for artifact in mobile_packages(artifacts)], ['z.apk', 'a.ipa']
        )

    def test_find_archived_artifacts(self):
        """All files are listed recursively, sorted by relative path."""
        self._create_fake_file('app.ipa')
        self._create_fake_file('android/app-release.apk')
        self._create_fake_file('android/mapping.txt')
        os.makedirs(os.path.join(self.archive_dir, 'empty'))

        artifacts = find_archived_artifacts(self.archive_dir)

        self.assertEqual(
            [artifact.relative_path for artifact in artifacts],
            [
                os.path.join('android', 'app-release.apk'),
                os.path.join('android', 'mapping.txt'),
                'app.ipa',
            ],
        )
        apk = artifacts[0]
        self.assertEqual(apk.file_name, 'app-release.apk')
        self.assertEqual(apk.path, os.path.join(self.archive_dir, 'android', 'app-release.apk'))
        self.assertTrue(os.path.isfile(apk.path))

    def test_find_archived_artifacts_includes_hidden_files(self):
        """Files in hidden directories and dotfiles are archived artifacts too."""
        self._create_fake_file('.build/app.ipa')
        self._create_fake_file('.hidden.apk')

        artifacts = find_archived_artifacts(self.archive_dir)

        self.assertEqual(
            [artifact.relative_path for artifact in artifacts],
            [os.path.join('.build', 'app.ipa'), '.hidden.apk'],
        )

    def test_find_archived_artifacts_empty_dir(self):
        self.assertEqual(find_archived_artifacts(self.archive_dir), [])

    def test_display_path_falls_back_to_file_name(self):
        self.assertEqual(ArtifactRef('app.ipa', '/tmp/app.ipa').display_path, 'app.ipa')
        self.assertEqual(ArtifactRef('app.ipa', '/tmp/x/app.ipa', 'x/app.ipa').display_path,
                         'x/app.ipa')


if __name__ == '__main__':
    unittest.main()
