#!/usr/bin/env python3
#
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

"""The script to upload the mobile packages archived by a build to Appaloosa."""

import argparse
import logging
import os
import sys
import time

from artifacts import find_archived_artifacts
from artifacts import mobile_packages
from build_record import ArtifactRef
from build_record import Build
from build_record import Result
from history import BuildHistory
from uploader import DISPLAY_NAME
from uploader import AppaloosaConfig
from uploader import Uploader


VERSION = '1.0'

LOG_PATH = 'logs/appaloosa_uploader.log'
METRICS_PATH = 'logs/appaloosa_metrics.pb'
HISTORY_PATH = 'logs/appaloosa_builds.json'
BUILD_LOGGER_NAME = 'appaloosa.build'


class BuildLogFormatter(logging.Formatter):
    """Formats build log lines, prefixing error lines with 'ERROR: '."""

    def format(self, record):
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return f'ERROR: {message}'
        return message


def _get_env_var(key: str, default=None, check=False):
    value = os.environ.get(key, default)
    if check and not value:
        raise ValueError(f'Error: the environment variable {key} is not set')
    return value


def _build_logger() -> logging.Logger:
    """Returns the logger printing the build log to stdout."""
    logger = logging.getLogger(BUILD_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(BuildLogFormatter('%(message)s'))
        logger.addHandler(handler)
    return logger


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=DISPLAY_NAME)
    parser.add_argument(
        '--archive-dir',
        default=None,
        help='Directory holding the archived artifacts of the build (default: $DIST_DIR)',
    )
    parser.add_argument(
        '--token',
        default=None,
        help='Appaloosa store token (default: $APPALOOSA_TOKEN)',
    )
    parser.add_argument(
        '--result',
        default='SUCCESS',
        choices=[result.name for result in Result],
        type=str.upper,
        help='Result of the build steps run before the upload',
    )
    parser.add_argument(
        '--build-number',
        type=int,
        default=None,
        help='Number of the build (default: $BUILD_NUMBER, else next in history)',
    )
    parser.add_argument(
        '--history',
        default=None,
        help=f'Build history file (default: <archive-dir>/{HISTORY_PATH})',
    )
    parser.add_argument(
        '--dryrun',
        action='store_true',
        help='List files to upload and exit',
    )
    parser.add_argument(
        '--summary',
        action='store_true',
        help='List the latest uploads of the project and exit',
    )
    args = parser.parse_args(argv)
    try:
        args.archive_dir = args.archive_dir or _get_env_var('DIST_DIR', check=True)
    except ValueError as e:
        parser.error(str(e))
    return args


def _print_summary(history: BuildHistory):
    receipts = Uploader.project_actions(history.load())
    for receipt in receipts:
        print(f"{receipt.file_name:<40} {receipt.application_id or '-':<12} {receipt.uploaded_at}")
    print(f"Total: {len(receipts)} uploaded file(s).")


def _archived_artifacts(archive_dir: str, history_path: str) -> list[ArtifactRef]:
    """Returns the archived artifacts, leaving out the files this script writes."""
    outputs = {
        os.path.abspath(path)
        for path in (
            os.path.join(archive_dir, LOG_PATH),
            os.path.join(archive_dir, METRICS_PATH),
            history_path,
        )
    }
    return [
        artifact for artifact in find_archived_artifacts(archive_dir)
        if os.path.abspath(artifact.path) not in outputs
    ]


def _print_packages(archive_dir: str, history_path: str):
    packages = mobile_packages(_archived_artifacts(archive_dir, history_path))
    for package in packages:
        print(package.display_path)
    print(f"Total: {len(packages)} files.")


def _build_number(args: argparse.Namespace, history: BuildHistory) -> int:
    if args.build_number is not None:
        return args.build_number
    env_number = _get_env_var('BUILD_NUMBER')
    if env_number:
        try:
            return int(env_number)
        except ValueError:
            raise ValueError(f'Error: BUILD_NUMBER is not a number: {env_number}') from None
    return history.next_build_number()


def main(argv=None) -> int:
    """Uploads the archived .ipa and .apk files to Appaloosa."""
    args = _parse_args(argv)

    archive_dir = args.archive_dir
    log_file = os.path.join(archive_dir, LOG_PATH)
    os.makedirs(os.path.dirname(log_file), exist_ok=True)
    print('appaloosa_upload_script.py will export logs to:', log_file)
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s %(levelname)s %(message)s',
        filename=log_file,
    )
    logging.info('Appaloosa uploader version: %s', VERSION)

    history_path = args.history or os.path.join(archive_dir, HISTORY_PATH)
    history = BuildHistory(history_path)
    try:
        if args.summary:
            _print_summary(history)
            return 0
        if args.dryrun:
            _print_packages(archive_dir, history_path)
            return 0

        start = time.time()
        config = AppaloosaConfig(
            token=args.token if args.token is not None else _get_env_var('APPALOOSA_TOKEN', ''),
            base_url=_get_env_var('APPALOOSA_URL', AppaloosaConfig.base_url),
        )
        build = Build(
            _build_number(args, history),
            Result.from_name(args.result),
            _archived_artifacts(archive_dir, history_path),
        )
        uploader = Uploader(config)
        success = uploader.perform(build, _build_logger())
        if not success and build.result.is_better_or_equal_to(Result.FAILURE):
            build.result = Result.FAILURE
        history.record(build)

        elapsed = time.time() - start
        logging.info('Total time of uploading build artifacts to Appaloosa: %d seconds', elapsed)
        metrics = uploader.upload_metrics()
        metrics.update({
            'build_number': build.number,
            'success': success,
            'time_ms': int(elapsed * 1000),
            'uploader_version': VERSION,
        })
        metrics_file = os.path.join(archive_dir, METRICS_PATH)
        with open(metrics_file, 'wb') as file:
            file.write(metrics.SerializeToString())
        logging.info('Output upload metrics to: %s', metrics_file)
        return 0 if success else 1
    except ValueError as e:
        logging.exception("Unexpected error: %s", e)
        return 1


if __name__ == '__main__':
    sys.exit(main())
