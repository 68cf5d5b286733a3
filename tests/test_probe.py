"""
Tests for installed-state probing (mocked runner).
"""

import pytest

from pipconverge.adapters.mock import MockRunner
from pipconverge.core.config.paths import ManagerPaths
from pipconverge.core.models.package import DesiredPackage
from pipconverge.core.services.probe import ProbeError, probe

FREEZE = """\
certifi==2023.7.22
Flask-Login==0.6.2
requests==2.31.0
-e git+https://github.com/org/tool.git@abc123#egg=tool
zope.interface==6.0
"""


class TestProbeFreeze:
    def test_finds_installed_version(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        state = probe(DesiredPackage(name="requests"), runner)
        assert state.version == "2.31.0"
        assert state.installed
        assert runner.commands == ["pip freeze"]

    def test_normalized_match(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        state = probe(DesiredPackage(name="flask_login"), runner)
        assert state.version == "0.6.2"

    def test_case_insensitive(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        assert probe(DesiredPackage(name="REQUESTS"), runner).version == "2.31.0"

    def test_dots_preserved(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        assert probe(DesiredPackage(name="Zope.Interface"), runner).version == "6.0"

    def test_prefix_does_not_match(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        assert probe(DesiredPackage(name="request"), runner).version is None

    def test_not_listed(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        state = probe(DesiredPackage(name="django"), runner)
        assert state.version is None
        assert not state.installed

    def test_uses_package_name_for_lookup(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        pkg = DesiredPackage(
            name="git+https://github.com/org/certifi.git", package_name="certifi"
        )
        assert probe(pkg, runner).version == "2023.7.22"

    def test_editable_lines_ignored(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE)
        assert probe(DesiredPackage(name="tool"), runner).version is None

    def test_nonzero_exit_is_not_installed(self, runner: MockRunner):
        runner.set_response("freeze", stdout=FREEZE, exit_status=1)
        assert probe(DesiredPackage(name="requests"), runner).version is None

    def test_spawn_failure_raises(self, runner: MockRunner):
        runner.set_spawn_error("freeze")
        with pytest.raises(ProbeError):
            probe(DesiredPackage(name="requests"), runner)

    def test_timeout_raises(self, runner: MockRunner):
        runner.set_timeout("freeze")
        with pytest.raises(ProbeError):
            probe(DesiredPackage(name="requests"), runner)

    def test_virtualenv_pip(self, runner: MockRunner):
        pkg = DesiredPackage(name="requests", environment_root="/opt/venv")
        probe(pkg, runner)
        assert runner.call_log[0][0] == ["/opt/venv/bin/pip", "freeze"]

    def test_injected_path_strategy(self, runner: MockRunner):
        paths = ManagerPaths(install_method="source", prefix_dir="/opt/python")
        probe(DesiredPackage(name="requests"), runner, pip_path=paths.pip)
        assert runner.call_log[0][0] == ["/opt/python/bin/pip", "freeze"]


class TestProbeSelf:
    def test_pip_uses_version_output(self, runner: MockRunner):
        runner.set_response(
            "--version",
            stdout="pip 23.3.1 from /usr/lib/python3/site-packages/pip (python 3.11)\n",
        )
        state = probe(DesiredPackage(name="pip"), runner)
        assert state.version == "23.3.1"
        assert runner.commands == ["pip --version"]

    def test_pip_case_insensitive(self, runner: MockRunner):
        runner.set_response("--version", stdout="pip 24.0 from /x (python 3.12)")
        assert probe(DesiredPackage(name="PIP"), runner).version == "24.0"

    def test_pip_version_failure(self, runner: MockRunner):
        runner.set_response("--version", exit_status=127)
        assert probe(DesiredPackage(name="pip"), runner).version is None

    def test_pip_empty_output(self, runner: MockRunner):
        runner.set_response("--version", stdout="")
        assert probe(DesiredPackage(name="pip"), runner).version is None
