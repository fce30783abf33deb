"""
Tests for the adapter registry, the plan executor, and the transitions.
"""

from pathlib import Path

from binswap.adapters.memory import MemoryFilesystemAdapter
from binswap.adapters.mock import MockAdapter
from binswap.adapters.registry import AdapterRegistry
from binswap.core.engine.executor import execute_plan, observe_state, probe
from binswap.core.engine.planner import plan_install, plan_uninstall
from binswap.core.models.action import Action, Receipt
from binswap.core.models.config import InstallLayout
from binswap.core.models.identity import Identity
from binswap.core.models.outcome import FailureKind
from binswap.core.models.state import Phase
from binswap.core.reliability.lock import LockUnavailable
from binswap.core.services.transition import install_transition, uninstall_transition

TARGET = "/usr/local/bin/ls"
BACKUP = "/usr/local/bin/ls.backup"
ARTIFACT = "/src/ls/target/x86_64-unknown-linux-musl/release/ls"

ROOT = Identity(name="root", uid=0, gid=0, home="/root")
ALICE = Identity(name="alice", uid=1000, gid=1000, home="/home/alice")


def _layout(tmp_path: Path, audit: bool = False) -> InstallLayout:
    return InstallLayout(
        install_path=Path(TARGET),
        backup_path=Path(BACKUP),
        artifact_path=Path(ARTIFACT),
        lock_path=tmp_path / "ls.lock",
        project_dir=Path("/src/ls"),
        audit_path=tmp_path / "audit.ndjson" if audit else None,
    )


def _registry(fs: MemoryFilesystemAdapter) -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register(fs)
    return registry


class TestRegistry:
    def test_unknown_adapter(self):
        receipt = AdapterRegistry().execute_action(Action(id="a", adapter="nope"))
        assert receipt.failed
        assert "No adapter registered" in receipt.error

    def test_validation_failure(self):
        registry = _registry(MemoryFilesystemAdapter())
        receipt = registry.execute_action(
            Action(id="a", adapter="filesystem", params={"operation": "copy", "src": "/x"})
        )
        assert receipt.failed
        assert "'dst'" in receipt.error

    def test_same_source_and_destination_rejected(self):
        registry = _registry(MemoryFilesystemAdapter({"/x": b"1"}))
        receipt = registry.execute_action(
            Action(id="a", adapter="filesystem",
                   params={"operation": "move", "src": "/x", "dst": "/x"})
        )
        assert receipt.failed
        assert "same path" in receipt.error

    def test_dry_run_skips_mutations_but_runs_stat(self):
        fs = MemoryFilesystemAdapter({"/x": b"1"})
        registry = _registry(fs)

        skipped = registry.execute_action(
            Action(id="rm", adapter="filesystem", params={"operation": "remove", "path": "/x"}),
            dry_run=True,
        )
        probed = registry.execute_action(
            Action(id="st", adapter="filesystem", params={"operation": "stat", "path": "/x"}),
            dry_run=True,
        )

        assert skipped.status == "skipped"
        assert fs.exists("/x")
        assert probed.ok
        assert probed.metadata["exists"] is True

    def test_raising_adapter_becomes_failure(self):
        shell = MockAdapter("shell")

        def _boom(_ctx):
            raise RuntimeError("kaboom")

        shell.on("a", _boom)
        registry = AdapterRegistry()
        registry.register(shell)

        receipt = registry.execute_action(Action(id="a", adapter="shell"))
        assert receipt.failed
        assert "kaboom" in receipt.error

    def test_unavailable_adapter_is_not_executed(self):
        shell = MockAdapter("shell", available=False)
        registry = AdapterRegistry()
        registry.register(shell)

        receipt = registry.execute_action(Action(id="a", adapter="shell"))

        assert receipt.failed
        assert "not available" in receipt.error
        assert shell.call_count == 0


class TestObserve:
    def test_probe_absent_and_present(self):
        registry = _registry(MemoryFilesystemAdapter({TARGET: b"ls"}))

        present = probe(registry, TARGET, "p1")
        absent = probe(registry, BACKUP, "p2")

        assert present.exists and present.size == 2
        assert absent is not None and not absent.exists

    def test_failed_probe_is_none(self):
        fs = MemoryFilesystemAdapter({TARGET: b"ls"})
        fs.set_failure("p1", "EACCES")
        assert probe(_registry(fs), TARGET, "p1") is None

    def test_observe_state(self, tmp_path):
        registry = _registry(MemoryFilesystemAdapter({TARGET: b"ls", BACKUP: b"old"}))

        state, error = observe_state(registry, _layout(tmp_path))

        assert error is None
        assert state.phase == Phase.INSTALLED_WITH_BACKUP

    def test_observe_state_reports_probe_failure(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"ls"})
        fs.set_failure("observe:backup")

        state, error = observe_state(_registry(fs), _layout(tmp_path))

        assert state is None
        assert BACKUP in error

    def test_step_failure_does_not_hit_the_probe_of_the_same_name(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"ls"})
        fs.set_failure("backup")

        state, error = observe_state(_registry(fs), _layout(tmp_path))

        assert error is None
        assert state.phase == Phase.INSTALLED


class TestExecutePlan:
    def test_stops_at_first_failure(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"old", ARTIFACT: b"new"})
        registry = _registry(fs)
        state, _ = observe_state(registry, _layout(tmp_path))
        artifact = probe(registry, ARTIFACT, "a")
        fs.set_failure("backup")

        report = execute_plan(plan_install(state, artifact), registry)

        assert report.total == 1
        assert report.status == "failed"
        assert report.failed_action.id.endswith(":backup")
        assert fs.read(TARGET) == b"old"

    def test_dry_run_report(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"old"})
        registry = _registry(fs)
        state, _ = observe_state(registry, _layout(tmp_path))

        report = execute_plan(plan_uninstall(state), registry, dry_run=True)

        assert report.ok
        assert report.dry_run
        assert report.succeeded == 0
        assert fs.exists(TARGET)
        assert report.to_dict()["receipts"][0]["status"] == "skipped"


class TestTransitions:
    def test_install_refuses_without_elevation(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"old", ARTIFACT: b"new"})

        result = install_transition(_layout(tmp_path), _registry(fs), ALICE)

        assert result.failure == FailureKind.PRIVILEGE_REQUIRED
        assert "This installer must be run with sudo." in result.remediation
        assert fs.call_log == []

    def test_install_requires_artifact(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"old"})

        result = install_transition(_layout(tmp_path), _registry(fs), ROOT)

        assert result.failure == FailureKind.BUILD_FAILURE
        assert fs.mutations == []

    def test_install_and_restore(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"old", ARTIFACT: b"new"})
        registry = _registry(fs)
        layout = _layout(tmp_path, audit=True)

        installed = install_transition(layout, registry, ROOT, invoking_user=ALICE)
        assert installed.ok
        assert installed.state_before.phase == Phase.INSTALLED
        assert installed.state_after.phase == Phase.INSTALLED_WITH_BACKUP

        restored = uninstall_transition(layout, registry, ROOT, invoking_user=ALICE)
        assert restored.ok
        assert fs.read(TARGET) == b"old"
        assert restored.to_dict()["outcome"] == "restored"

    def test_lock_factory_is_used(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"old"})
        seen = []

        def _busy(path):
            seen.append(path)
            raise LockUnavailable("busy")

        result = uninstall_transition(
            _layout(tmp_path), _registry(fs), ROOT, lock_factory=_busy
        )

        assert seen == [tmp_path / "ls.lock"]
        assert result.failure == FailureKind.LOCK_HELD
        assert fs.exists(TARGET)

    def test_dry_run_takes_no_lock(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"old"})

        def _never(path):
            raise AssertionError("lock taken during dry run")

        result = uninstall_transition(
            _layout(tmp_path), _registry(fs), ALICE, dry_run=True, lock_factory=_never
        )

        assert result.ok
        assert result.outcome == "removed"
        assert fs.exists(TARGET)

    def test_nothing_to_uninstall_takes_no_lock_and_writes_no_ledger(self, tmp_path):
        def _never(path):
            raise AssertionError("lock taken for a no-op")

        result = uninstall_transition(
            _layout(tmp_path, audit=True),
            _registry(MemoryFilesystemAdapter()),
            ROOT,
            lock_factory=_never,
        )

        assert result.ok
        assert result.outcome == "nothing_to_uninstall"
        assert not (tmp_path / "audit.ndjson").exists()

    def test_unreadable_backup_names_the_next_step(self, tmp_path):
        fs = MemoryFilesystemAdapter({TARGET: b"new", ARTIFACT: b"new"})
        fs.set_failure("observe:backup", "Permission denied")

        result = install_transition(_layout(tmp_path), _registry(fs), ROOT)

        assert result.failure == FailureKind.TRANSITION_FAILURE
        assert f"  ls -l {TARGET} {BACKUP}" in result.remediation
        assert fs.mutations == []


class TestMockAdapter:
    def test_default_success_and_call_log(self):
        mock = MockAdapter()
        registry = AdapterRegistry()
        registry.register(mock)

        receipt = registry.execute_action(Action(id="x", adapter="shell"))

        assert receipt.ok
        assert receipt.metadata["return_code"] == 0
        assert [c.action.id for c in mock.call_log] == ["x"]

    def test_effect_may_return_receipt(self):
        mock = MockAdapter()
        mock.on("x", lambda ctx: Receipt.failure(adapter="shell", action_id="x", error="no"))
        registry = AdapterRegistry()
        registry.register(mock)

        assert registry.execute_action(Action(id="x", adapter="shell")).error == "no"
