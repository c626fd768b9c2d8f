"""
Integration tests for run-android.

These tests create a React Native style project on disk and drive the
whole orchestrator with recorded processes instead of gradlew and adb.
"""

import logging
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path

from runandroid.cli import build_parser, main, options_from_args
from runandroid.orchestrator.base import Orchestrator, RunOptions
from runandroid.packager.server import PackagerStatus
from runandroid.utils.process import ProcessRunner


BUILD_GRADLE = '''
apply plugin: "com.android.application"

def enableSeparateBuildPerCPUArchitecture = {flag}

android {{
    buildTypes {{
        release {{
            minifyEnabled false
        }}
    }}
    productFlavors {{
        demo {{}}
    }}
}}
'''

MANIFEST = '''<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android"
    package="com.example.app">
    <application android:name="com.example.app.MainApplication">
      <activity
        android:name="com.example.app.MainActivity">
      </activity>
    </application>
</manifest>
'''

COMPONENT = 'com.example.app/com.example.app.MainActivity'
BASE_LOGGER = 'runandroid.orchestrator.base'


class RecordingRunner(ProcessRunner):
    """Records commands; answers `adb devices` with canned output."""

    def __init__(self, devices_output='List of devices attached\n', fail_on=None):
        self.devices_output = devices_output
        self.fail_on = fail_on
        self.calls = []
        self.spawned = []

    def run(self, cmd, cwd=None, capture_output=False, timeout=None, check=True):
        cmd = [str(c) for c in cmd]
        self.calls.append((cmd, cwd))
        if self.fail_on in cmd and check:
            raise subprocess.CalledProcessError(1, cmd)
        stdout = self.devices_output if cmd[-1] == 'devices' else ''
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr='')

    def spawn(self, cmd, cwd=None, detached=False, quiet=False):
        self.spawned.append(([str(c) for c in cmd], cwd))


class LaunchFailingRunner(RecordingRunner):
    """A runner on which the packager script cannot be started."""

    def run(self, cmd, cwd=None, capture_output=False, timeout=None, check=True):
        if str(cmd[0]) == 'open':
            raise FileNotFoundError(2, 'No such file or directory', 'open')
        return super().run(cmd, cwd, capture_output, timeout, check)

    def spawn(self, cmd, cwd=None, detached=False, quiet=False):
        raise FileNotFoundError(2, 'No such file or directory', str(cmd[0]))


class ListHandler(logging.Handler):
    """Keeps the message of every record it handles."""

    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@contextmanager
def collect_logs(*names):
    """Collect the messages that reach the named loggers' handlers."""
    handler = ListHandler()
    loggers = [logging.getLogger(name) for name in names]
    for logger in loggers:
        logger.addHandler(handler)
    try:
        yield handler.messages
    finally:
        for logger in loggers:
            logger.removeHandler(handler)


def _always(status):
    return lambda port: status


class TestRunAndroid:
    """End-to-end runs against a temporary project."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _create_project(self, flag='false', manifest_dirs=('debug',)):
        android = self.temp_dir / 'android'
        (android / 'app').mkdir(parents=True)
        (android / 'gradlew').write_text('#!/bin/sh\n')
        (android / 'app' / 'build.gradle').write_text(BUILD_GRADLE.format(flag=flag))

        manifest_dir = android / 'app' / 'build' / 'intermediates' / 'manifests' / 'full'
        for part in manifest_dirs:
            manifest_dir = manifest_dir / part
        manifest_dir.mkdir(parents=True)
        (manifest_dir / 'AndroidManifest.xml').write_text(MANIFEST)
        return android

    def _options(self, **kwargs):
        return RunOptions(root=self.temp_dir, android_home='', **kwargs)

    def test_default_run(self):
        android = self._create_project()
        runner = RecordingRunner('List of devices attached\nemulator-5554\tdevice\n')
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.RUNNING)
        )

        assert orchestrator.run() == 0

        gradle_cmd = orchestrator.adapter.gradle_command()
        assert runner.calls[0] == ([gradle_cmd, 'installDebug'], android)
        assert runner.calls[1][0] == ['adb', 'devices']
        assert runner.calls[2][0] == [
            'adb', '-s', 'emulator-5554', 'shell', 'am', 'start', '-n', COMPONENT
        ]
        assert runner.spawned == []

    def test_flavored_variant_with_separate_builds(self):
        self._create_project(flag='true', manifest_dirs=('demo', 'x86', 'release'))
        runner = RecordingRunner()
        orchestrator = Orchestrator(
            self._options(variant='demoRelease', install_debug='--offline'),
            runner=runner,
            status_check=_always(PackagerStatus.UNRECOGNIZED)
        )

        assert orchestrator.run() == 0
        assert runner.calls[0][0][1:] == ['installDemoRelease', '--offline']
        # no devices listed: plain `adb shell am start`
        assert runner.calls[-1][0] == ['adb', 'shell', 'am', 'start', '-n', COMPONENT]

    def test_starts_packager_when_not_running(self):
        self._create_project()
        (self.temp_dir / 'node_modules' / 'react-native' / 'packager').mkdir(parents=True)
        runner = RecordingRunner()
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.NOT_RUNNING)
        )

        assert orchestrator.ensure_packager() == PackagerStatus.NOT_RUNNING
        launched = runner.spawned + [c for c in runner.calls if c[0][0] == 'open']
        assert len(launched) == 1
        assert launched[0][1] == self.temp_dir / 'node_modules' / 'react-native' / 'packager'

    def test_missing_packager_dir_is_logged(self):
        self._create_project()
        orchestrator = Orchestrator(
            self._options(),
            runner=ProcessRunner(),
            status_check=_always(PackagerStatus.NOT_RUNNING)
        )

        with collect_logs(BASE_LOGGER) as messages:
            assert orchestrator.ensure_packager() == PackagerStatus.NOT_RUNNING
        assert any(m.startswith('Cannot start the packager') for m in messages)

    def test_packager_launch_failure_continues_with_build(self):
        self._create_project()
        (self.temp_dir / 'node_modules' / 'react-native' / 'packager').mkdir(parents=True)
        runner = LaunchFailingRunner('List of devices attached\nemulator-5554\tdevice\n')
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.NOT_RUNNING)
        )

        assert orchestrator.run() == 0
        assert runner.calls[0][0][1:] == ['installDebug']

    def test_missing_project(self):
        runner = RecordingRunner()
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.RUNNING)
        )

        assert orchestrator.run() == 1
        assert runner.calls == []

    def test_build_failure_stops_run(self):
        self._create_project()
        runner = RecordingRunner(fail_on='installDebug')
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.RUNNING)
        )

        assert orchestrator.run() == 1
        assert len(runner.calls) == 1

    def test_missing_manifest(self):
        self._create_project(manifest_dirs=('release',))
        runner = RecordingRunner()
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.RUNNING)
        )

        assert orchestrator.run() == 1
        assert all(c[0][0] != 'adb' for c in runner.calls)

    def test_malformed_build_file(self):
        android = self._create_project()
        (android / 'app' / 'build.gradle').write_text('android {\n}\n')
        runner = RecordingRunner()
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.RUNNING)
        )

        assert orchestrator.run() == 1

    def test_undecodable_manifest(self):
        android = self._create_project()
        manifest = (
            android / 'app' / 'build' / 'intermediates' / 'manifests' / 'full'
            / 'debug' / 'AndroidManifest.xml'
        )
        manifest.write_bytes(b'\xff\xfe\x00not utf8')
        runner = RecordingRunner()
        orchestrator = Orchestrator(
            self._options(), runner=runner, status_check=_always(PackagerStatus.RUNNING)
        )

        with collect_logs(BASE_LOGGER) as messages:
            assert orchestrator.run() == 1
        assert 'adb invocation failed. Do you have adb in your PATH?' in messages
        assert all(c[0][0] != 'adb' for c in runner.calls)

    def test_undecodable_build_file(self):
        android = self._create_project()
        (android / 'app' / 'build.gradle').write_bytes(b'android {\xff\xfe }\n')
        orchestrator = Orchestrator(
            self._options(), runner=RecordingRunner(), status_check=_always(PackagerStatus.RUNNING)
        )

        assert orchestrator.run() == 1


class TestCLI:
    """Test the command line layer."""

    def test_parse_options(self):
        args = build_parser().parse_args([
            '--root', 'MyApp',
            '--variant', 'demoRelease',
            '--install-debug=--offline',
            '--open', 'iTerm',
            '--port', '9000',
        ])
        options = options_from_args(args)

        assert options.root == Path('MyApp')
        assert options.variant == 'demoRelease'
        assert options.install_debug == '--offline'
        assert options.open_with == 'iTerm'
        assert options.port == 9000
        assert options.packager_dir == Path('MyApp') / 'node_modules' / 'react-native' / 'packager'

    def test_default_options(self, monkeypatch):
        monkeypatch.delenv('RCT_METRO_PORT', raising=False)
        options = options_from_args(build_parser().parse_args([]))

        assert options.root == Path('.')
        assert options.variant is None
        assert options.flavor is None
        assert options.port == 8081

    def test_main_without_android_project(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert main(['--root', tmpdir]) == 1

    def test_android_home_from_environment(self, monkeypatch):
        monkeypatch.setenv('ANDROID_HOME', '/opt/android-sdk')
        options = options_from_args(build_parser().parse_args([]))
        assert options.android_home == '/opt/android-sdk'

    def test_main_logs_each_message_once(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with collect_logs('runandroid', BASE_LOGGER) as messages:
                assert main(['--root', tmpdir]) == 1

        not_found = [m for m in messages if m.startswith('Android project not found')]
        assert len(not_found) == 1
        assert not any('\033[' in m for m in messages)
