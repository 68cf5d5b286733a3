"""
Tests for the convergence controller — install, upgrade, remove.

Every test drives the controller through a MockRunner:
    "freeze"  → installed-state probe
    "-c"      → candidate lookup
    "install" / "uninstall" → mutating pip commands
"""

import pytest

from pipconverge.adapters.base import CommandExecutionError
from pipconverge.adapters.mock import MockRunner
from pipconverge.core.engine.converge import ConvergenceController, removing_package
from pipconverge.core.models.package import LATEST, DesiredPackage
from pipconverge.core.services.probe import ProbeError


def _installed(runner: MockRunner, freeze: str) -> None:
    runner.set_response("freeze", stdout=freeze)


def _candidate(runner: MockRunner, filename: str, exit_status: int = 0) -> None:
    runner.set_response("-c", stdout=filename, exit_status=exit_status)


def _mutations(runner: MockRunner) -> list[list[str]]:
    """Commands that install or uninstall."""
    return [
        cmd for cmd, _ in runner.call_log
        if len(cmd) > 1 and cmd[1] in ("install", "uninstall")
    ]


# ── Install ─────────────────────────────────────────────────────────


class TestInstall:
    def test_installs_declared_version_when_absent(self, runner: MockRunner):
        _installed(runner, "")
        result = ConvergenceController(runner).install(
            DesiredPackage(name="requests", version="2.31.0")
        )
        assert result.changed
        assert result.action == "install"
        assert result.target_version == "2.31.0"
        assert _mutations(runner)[0][-1] == "requests==2.31.0"

    def test_declared_version_differs_from_installed(self, runner: MockRunner):
        _installed(runner, "requests==2.0.0\n")
        result = ConvergenceController(runner).install(
            DesiredPackage(name="requests", version="2.31.0")
        )
        assert result.changed
        assert result.current_version == "2.0.0"
        assert _mutations(runner)[0][-1] == "requests==2.31.0"

    def test_declared_version_already_installed(self, runner: MockRunner):
        _installed(runner, "requests==2.31.0\n")
        result = ConvergenceController(runner).install(
            DesiredPackage(name="requests", version="2.31.0")
        )
        assert not result.changed
        assert result.noop
        assert _mutations(runner) == []

    def test_declared_version_skips_candidate_lookup(self, runner: MockRunner):
        _installed(runner, "")
        ConvergenceController(runner).install(
            DesiredPackage(name="requests", version="2.31.0")
        )
        assert not any("-c" in cmd for cmd, _ in runner.call_log)

    def test_unpinned_absent_installs_candidate(self, runner: MockRunner):
        _installed(runner, "")
        _candidate(runner, "requests-2.31.0.tar.gz")
        result = ConvergenceController(runner).install(DesiredPackage(name="requests"))
        assert result.changed
        assert result.target_version == "2.31.0"
        assert _mutations(runner)[0][-1] == "requests==2.31.0"

    def test_unpinned_present_is_noop(self, runner: MockRunner):
        _installed(runner, "requests==1.0\n")
        result = ConvergenceController(runner).install(DesiredPackage(name="requests"))
        assert result.noop
        assert result.current_version == "1.0"
        assert runner.call_count == 1  # probe only

    def test_resolution_failure_installs_bare_name(self, runner: MockRunner):
        _installed(runner, "")
        _candidate(runner, "", exit_status=1)
        result = ConvergenceController(runner).install(DesiredPackage(name="requests"))
        assert result.changed
        assert result.target_version == LATEST
        assert _mutations(runner)[0][-1] == "requests"

    def test_vcs_name_with_version_has_no_suffix(self, runner: MockRunner):
        _installed(runner, "")
        pkg = DesiredPackage(
            name="git+https://x/y.git", package_name="y", version="1.2.3"
        )
        ConvergenceController(runner).install(pkg)
        assert _mutations(runner)[0][-1] == "git+https://x/y.git"

    def test_idempotent(self):
        runner = MockRunner()
        _installed(runner, "")
        controller = ConvergenceController(runner)
        pkg = DesiredPackage(name="requests", version="2.31.0")

        first = controller.install(pkg)
        # pip install succeeded; the environment now lists the package
        _installed(runner, "requests==2.31.0\n")
        second = controller.install(pkg)

        assert first.changed
        assert not second.changed
        assert len(_mutations(runner)) == 1

    def test_probe_runs_once_per_call(self, runner: MockRunner):
        _installed(runner, "")
        _candidate(runner, "requests-2.31.0.tar.gz")
        ConvergenceController(runner).install(DesiredPackage(name="requests"))
        probes = [cmd for cmd, _ in runner.call_log if cmd[-1] == "freeze"]
        assert len(probes) == 1

    def test_each_call_reprobes(self, runner: MockRunner):
        _installed(runner, "requests==2.31.0\n")
        controller = ConvergenceController(runner)
        controller.install(DesiredPackage(name="requests"))
        controller.install(DesiredPackage(name="requests"))
        probes = [cmd for cmd, _ in runner.call_log if cmd[-1] == "freeze"]
        assert len(probes) == 2

    def test_failure_propagates(self, runner: MockRunner):
        _installed(runner, "")
        runner.set_response("install", exit_status=1, stderr="No matching distribution")
        with pytest.raises(CommandExecutionError, match="No matching distribution"):
            ConvergenceController(runner).install(
                DesiredPackage(name="requests", version="9.9.9")
            )

    def test_probe_error_aborts(self, runner: MockRunner):
        runner.set_spawn_error("freeze")
        with pytest.raises(ProbeError):
            ConvergenceController(runner).install(DesiredPackage(name="requests"))
        assert _mutations(runner) == []

    def test_run_options_passed_to_mutation(self, runner: MockRunner):
        _installed(runner, "")
        pkg = DesiredPackage(name="requests", version="1.0", timeout=30, user="deploy")
        ConvergenceController(runner).install(pkg)
        _, options = runner.call_log[-1]
        assert options.timeout == 30
        assert options.user == "deploy"
        assert "HOME" in options.environment


# ── Upgrade ─────────────────────────────────────────────────────────


class TestUpgrade:
    def test_candidate_equals_installed(self, runner: MockRunner):
        _installed(runner, "requests==1.0\n")
        _candidate(runner, "requests-1.0.tar.gz")
        result = ConvergenceController(runner).upgrade(DesiredPackage(name="requests"))
        assert not result.changed
        assert result.noop
        assert _mutations(runner) == []

    def test_newer_candidate(self, runner: MockRunner):
        _installed(runner, "requests==1.0\n")
        _candidate(runner, "requests-2.0.tar.gz")
        result = ConvergenceController(runner).upgrade(DesiredPackage(name="requests"))
        assert result.changed
        assert result.action == "upgrade"
        assert result.target_version == "2.0"
        cmd = _mutations(runner)[0]
        assert cmd[1] == "install"
        assert "--upgrade" in cmd
        assert cmd[-1] == "requests==2.0"

    def test_not_installed_upgrades(self, runner: MockRunner):
        _installed(runner, "")
        _candidate(runner, "requests-2.0.tar.gz")
        result = ConvergenceController(runner).upgrade(DesiredPackage(name="requests"))
        assert result.changed
        assert "uninstalled" in result.description

    def test_latest_candidate_upgrades_bare(self, runner: MockRunner):
        _installed(runner, "requests==1.0\n")
        _candidate(runner, "", exit_status=1)
        result = ConvergenceController(runner).upgrade(DesiredPackage(name="requests"))
        assert result.changed
        assert _mutations(runner)[0][-2:] == ["--upgrade", "requests"]

    def test_keeps_existing_options(self, runner: MockRunner):
        _installed(runner, "")
        _candidate(runner, "requests-2.0.tar.gz")
        pkg = DesiredPackage(name="requests", options="--no-deps")
        ConvergenceController(runner).upgrade(pkg)
        assert _mutations(runner)[0][-3:] == ["--no-deps", "--upgrade", "requests==2.0"]
        assert pkg.options == "--no-deps"


# ── Remove ──────────────────────────────────────────────────────────


class TestRemove:
    def test_vcs_reference_removed_by_distribution_name(self, runner: MockRunner):
        _installed(runner, "tool==1.0\n")
        pkg = DesiredPackage(name="git+https://github.com/org/tool.git", package_name="tool")
        result = ConvergenceController(runner).remove(pkg)
        assert result.changed
        assert _mutations(runner)[0] == ["pip", "uninstall", "--yes", "tool"]

    def test_declared_mismatch_is_noop(self, runner: MockRunner):
        _installed(runner, "requests==2.0\n")
        result = ConvergenceController(runner).remove(
            DesiredPackage(name="requests", version="1.0")
        )
        assert result.noop
        assert _mutations(runner) == []

    def test_unset_version_removes(self, runner: MockRunner):
        _installed(runner, "requests==2.0\n")
        result = ConvergenceController(runner).remove(DesiredPackage(name="requests"))
        assert result.changed
        assert result.action == "remove"
        cmd = _mutations(runner)[0]
        assert cmd == ["pip", "uninstall", "--yes", "requests"]

    def test_matching_version_removes(self, runner: MockRunner):
        _installed(runner, "requests==2.0\n")
        result = ConvergenceController(runner).remove(
            DesiredPackage(name="requests", version="2.0")
        )
        assert result.changed
        assert "--index" not in _mutations(runner)[0]

    def test_not_installed_is_noop(self, runner: MockRunner):
        _installed(runner, "")
        result = ConvergenceController(runner).remove(DesiredPackage(name="requests"))
        assert result.noop

    def test_never_resolves_candidate(self, runner: MockRunner):
        _installed(runner, "requests==2.0\n")
        ConvergenceController(runner).remove(DesiredPackage(name="requests"))
        assert not any("-c" in cmd for cmd, _ in runner.call_log)

    def test_failure_propagates(self, runner: MockRunner):
        _installed(runner, "requests==2.0\n")
        runner.set_response("uninstall", exit_status=2)
        with pytest.raises(CommandExecutionError):
            ConvergenceController(runner).remove(DesiredPackage(name="requests"))


class TestRemovingPackage:
    @pytest.mark.parametrize("declared, installed, expected", [
        (None, None, False),
        ("1.0", None, False),
        (None, "2.0", True),
        ("2.0", "2.0", True),
        ("1.0", "2.0", False),
    ])
    def test_decision(self, declared, installed, expected):
        assert removing_package(declared, installed) is expected


# ── Dry run & dispatch ──────────────────────────────────────────────


class TestDryRun:
    def test_describes_without_mutating(self, runner: MockRunner):
        _installed(runner, "")
        result = ConvergenceController(runner, dry_run=True).install(
            DesiredPackage(name="requests", version="2.31.0")
        )
        assert result.dry_run
        assert not result.changed
        assert result.action == "install"
        assert "requests==2.31.0" in result.command
        assert _mutations(runner) == []

    def test_still_probes(self, runner: MockRunner):
        _installed(runner, "requests==2.0\n")
        result = ConvergenceController(runner, dry_run=True).remove(
            DesiredPackage(name="requests")
        )
        assert result.current_version == "2.0"
        assert runner.call_count == 1


class TestConvergeDispatch:
    def test_dispatches_by_name(self, runner: MockRunner):
        _installed(runner, "requests==2.0\n")
        result = ConvergenceController(runner).converge(
            DesiredPackage(name="requests"), "remove"
        )
        assert result.requested == "remove"
        assert result.changed

    def test_unknown_action(self, runner: MockRunner):
        with pytest.raises(ValueError, match="Unknown action"):
            ConvergenceController(runner).converge(DesiredPackage(name="x"), "purge")
