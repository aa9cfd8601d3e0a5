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

"""Post-build step uploading the archived mobile packages to Appaloosa."""

import dataclasses
import datetime
import enum
import logging
import time
from typing import Callable, Optional

from google.protobuf import json_format
from google.protobuf import struct_pb2

from actions import UploadReceipt
from actions import project_display_actions
from appaloosa_client import AppaloosaClient
from appaloosa_client import AppaloosaDeployError
from artifacts import mobile_packages
from build_record import ArtifactRef
from build_record import Build
from build_record import Result

DISPLAY_NAME = 'Upload to Appaloosa'


@dataclasses.dataclass
class AppaloosaConfig:
    """Per-project configuration of the Appaloosa upload step.

    Attributes:
        token: the Appaloosa store token. May be blank, the step then fails.
        base_url: address of the Appaloosa service.
    """
    token: str = ''
    base_url: str = 'https://www.appaloosa-store.com'

    def __repr__(self):
        return f'AppaloosaConfig(token=<hidden>, base_url={self.base_url!r})'


class BuildStepMonitor(enum.Enum):
    """Synchronization a build step requires from previous builds."""
    NONE = 'none'
    STEP = 'step'
    BUILD = 'build'


@dataclasses.dataclass
class UploadOutcome:
    """Result of deploying a single artifact.

    Attributes:
        artifact: the deployed artifact.
        succeeded: true if Appaloosa published the package.
        error: the deploy failure, empty on success.
        time_ms: time spent deploying.
        receipt: the receipt of a successful deploy.
    """
    artifact: ArtifactRef
    succeeded: bool
    error: str = ''
    time_ms: int = 0
    receipt: Optional[UploadReceipt] = None


class Uploader:
    """Uploader of the .ipa and .apk files archived by a build."""

    def __init__(self, config: AppaloosaConfig,
                 client_factory: Optional[Callable[[AppaloosaConfig], AppaloosaClient]] = None):
        """Initialize the Uploader with the project configuration."""
        self._config = config
        self._client_factory = client_factory or (
            lambda config: AppaloosaClient(config.token, config.base_url)
        )
        self._artifact_count = 0
        self._outcomes: list[UploadOutcome] = []

    @property
    def required_monitor_service(self) -> BuildStepMonitor:
        """Artifacts must be archived before this step runs."""
        return BuildStepMonitor.BUILD

    @property
    def outcomes(self) -> list[UploadOutcome]:
        return list(self._outcomes)

    def perform(self, build: Build, build_logger: logging.Logger) -> bool:
        """Uploads the packages archived by build and attaches receipts to it.

        Returns: true if the step succeeded.
        """
        if build.get_actions(UploadReceipt):
            raise RuntimeError(f'Build #{build.number} was already uploaded to Appaloosa')

        success = self.execute(build.result, build.artifacts, build_logger)
        for outcome in self._outcomes:
            if outcome.receipt:
                build.add_action(outcome.receipt)
        return success

    def execute(self, build_result: Result, artifacts: list[ArtifactRef],
                build_logger: logging.Logger) -> bool:
        """Deploys every .ipa and .apk artifact, in order.

        A failed deploy is logged and the remaining artifacts are still
        deployed. Errors other than AppaloosaDeployError are not caught.

        Args:
            build_result: result of the build so far.
            artifacts: the archived artifacts of the build.
            build_logger: the build log, error lines are logged at ERROR.

        Returns: true if at least one package was found and all were deployed.
        """
        self._artifact_count = len(artifacts)
        self._outcomes = []

        if build_result.is_worse_or_equal_to(Result.FAILURE):
            return False

        if not self._config.token or not self._config.token.strip():
            build_logger.error('Appaloosa token not defined in project settings')
            return False

        build_logger.info('Uploading to Appaloosa')
        build_logger.info('%d archived artifact(s) found', len(artifacts))

        packages = mobile_packages(artifacts)
        if not packages:
            build_logger.error(
                'No .ipa or .apk files to upload was found in the archived artifacts'
            )
            return False

        client = self._client_factory(self._config)
        client.use_logger(build_logger)

        had_failure = False
        for artifact in packages:
            build_logger.info('Uploading %s to Appaloosa', artifact.display_path)
            outcome = self._deploy(client, artifact)
            self._outcomes.append(outcome)
            if outcome.succeeded:
                build_logger.info('Upload of %s to Appaloosa done', artifact.display_path)
            else:
                had_failure = True
                build_logger.error(
                    'Failed to upload %s to Appaloosa: %s', artifact.display_path, outcome.error
                )

        return not had_failure

    @staticmethod
    def _deploy(client: AppaloosaClient, artifact: ArtifactRef) -> UploadOutcome:
        start = time.time()
        try:
            update = client.deploy_file(artifact.path)
        except AppaloosaDeployError as e:
            return UploadOutcome(artifact, False, str(e), int((time.time() - start) * 1000))
        elapsed_ms = int((time.time() - start) * 1000)

        update = dict(update or {})
        update_id = update.pop('id', None)
        application_id = update.pop('application_id', None)
        receipt = UploadReceipt(
            artifact.file_name,
            artifact.display_path,
            update_id=str(update_id) if update_id is not None else None,
            application_id=str(application_id) if application_id is not None else None,
            uploaded_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            details=update,
        )
        return UploadOutcome(artifact, True, time_ms=elapsed_ms, receipt=receipt)

    @staticmethod
    def project_actions(builds: list[Build]) -> list[UploadReceipt]:
        """Returns the receipts to display on the project page."""
        return project_display_actions(builds)

    def upload_metrics(self) -> struct_pb2.Struct:
        """Returns metrics of the last execution."""
        metrics = {
            'artifact_count': self._artifact_count,
            'package_count': len(self._outcomes),
            'failure_count': sum(1 for outcome in self._outcomes if not outcome.succeeded),
            'artifacts': [
                {
                    'path': outcome.artifact.display_path,
                    'succeeded': outcome.succeeded,
                    'error': outcome.error,
                    'time_ms': outcome.time_ms,
                }
                for outcome in self._outcomes
            ],
        }
        return json_format.ParseDict(metrics, struct_pb2.Struct())
