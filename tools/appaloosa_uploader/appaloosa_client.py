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

"""Client deploying application packages to the Appaloosa store."""

import logging
import os
import time
from typing import Any, Optional

import requests

DEFAULT_BASE_URL = 'https://www.appaloosa-store.com'
REQUEST_TIMEOUT_SECS = 300
POLL_INTERVAL_SECS = 1
PROCESSING_TIMEOUT_SECS = 600

# Status codes of a mobile application update on the Appaloosa side.
STATUS_PROCESSED = 4


class AppaloosaDeployError(Exception):
    """Raised when a file could not be deployed to Appaloosa."""


class AppaloosaClient:
    """Deploys .ipa and .apk files to the store owning the token.

    A deploy is a sequence of calls: ask Appaloosa for a signed storage form,
    post the file to the storage, notify Appaloosa of the new binary, wait for
    Appaloosa to process it, then publish the resulting update.
    """

    def __init__(self, token: str, base_url: str = DEFAULT_BASE_URL,
                 session: Optional[requests.Session] = None):
        self._token = token
        self._base_url = base_url.rstrip('/')
        self._session = session or requests.Session()
        self._logger = logging.getLogger(__name__)

    def use_logger(self, logger: logging.Logger):
        """Sends progress lines of deploys to logger."""
        self._logger = logger

    def deploy_file(self, path: str) -> dict[str, Any]:
        """Deploys the file at path and returns the published update.

        Raises:
            AppaloosaDeployError: the file is unreadable, a request failed or
                Appaloosa rejected the binary.
        """
        if not os.path.isfile(path):
            raise AppaloosaDeployError(f'File not found: {path}')

        try:
            form = self._get_upload_form()
            key = self._upload_file(path, form)
            update = self._notify_binary_upload(key)
            update = self._wait_for_processing(update)
            return self._publish_update(update)
        except requests.RequestException as e:
            raise AppaloosaDeployError(f'Error while deploying {path}: {e}') from e

    def _url(self, endpoint: str) -> str:
        return f'{self._base_url}/{endpoint.lstrip("/")}'

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        response = self._session.request(method, url, timeout=REQUEST_TIMEOUT_SECS, **kwargs)
        if not 200 <= response.status_code < 300:
            raise AppaloosaDeployError(
                f'Appaloosa answered {response.status_code} to {method} {url.split("?")[0]}: '
                f'{response.text[:200]}'
            )
        return response

    def _get_upload_form(self) -> dict[str, Any]:
        self._logger.info('Getting the upload form from Appaloosa')
        response = self._request(
            'GET', self._url('/api/upload_binary_form.json'), params={'token': self._token}
        )
        form = response.json()
        if not form.get('url'):
            raise AppaloosaDeployError('Appaloosa upload form has no url')
        return form

    def _upload_file(self, path: str, form: dict[str, Any]) -> str:
        """Posts the file to the storage described by form and returns its key."""
        file_name = os.path.basename(path)
        key = form.get('key', '${filename}').replace('${filename}', file_name)
        fields = {
            'key': key,
            'policy': form.get('policy'),
            'signature': form.get('signature'),
            'AWSAccessKeyId': form.get('access_key'),
            'acl': form.get('acl'),
            'success_action_status': form.get('success_action_status'),
            'Content-Type': form.get('content_type'),
        }
        fields = {name: value for name, value in fields.items() if value is not None}

        size = os.path.getsize(path)
        self._logger.info('Uploading %s (%d bytes)', file_name, size)
        with open(path, 'rb') as binary:
            self._request('POST', form['url'], data=fields, files={'file': (file_name, binary)})
        self._logger.info('Uploaded %s', file_name)
        return key

    def _notify_binary_upload(self, key: str) -> dict[str, Any]:
        self._logger.info('Notifying Appaloosa of the new binary')
        response = self._request(
            'POST', self._url('/api/on_binary_upload'), data={'token': self._token, 'key': key}
        )
        update = response.json()
        if 'id' not in update:
            raise AppaloosaDeployError('Appaloosa did not create an update for the binary')
        return update

    def _wait_for_processing(self, update: dict[str, Any]) -> dict[str, Any]:
        self._logger.info('Waiting for Appaloosa to process the binary')
        deadline = time.monotonic() + PROCESSING_TIMEOUT_SECS
        url = self._url(f'/mobile_application_updates/{update["id"]}.json')
        while True:
            status = update.get('status') or 0
            if status > STATUS_PROCESSED:
                raise AppaloosaDeployError(
                    f'Appaloosa failed to process the binary: '
                    f'{update.get("status_message", status)}'
                )
            if status == STATUS_PROCESSED:
                return update
            if time.monotonic() > deadline:
                raise AppaloosaDeployError(
                    f'Appaloosa did not process the binary within {PROCESSING_TIMEOUT_SECS} seconds'
                )
            time.sleep(POLL_INTERVAL_SECS)
            update = self._request('GET', url, params={'token': self._token}).json()

    def _publish_update(self, update: dict[str, Any]) -> dict[str, Any]:
        self._logger.info('Publishing update %s', update['id'])
        response = self._request(
            'POST',
            self._url('/api/publish_update.json'),
            data={'token': self._token, 'id': update['id']},
        )
        published = response.json()
        return {**update, **published}
