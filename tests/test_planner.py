"""
Tests for the transition planner — pure state → actions.
"""

import pytest

from binswap.core.engine.planner import (
    EXECUTABLE_MODE,
    generate_operation_id,
    plan_install,
    plan_uninstall,
)
from binswap.core.models.outcome import (
    OUTCOME_INSTALLED,
    OUTCOME_NOTHING_TO_UNINSTALL,
    OUTCOME_REMOVED,
    OUTCOME_RESTORED,
)
from binswap.core.models.state import ObservedFile, ObservedState, Phase

TARGET = "/usr/local/bin/ls"
BACKUP = "/usr/local/bin/ls.backup"
ARTIFACT = "/src/ls/target/x86_64-unknown-linux-musl/release/ls"


def _file(path: str, digest: str | None) -> ObservedFile:
    if digest is None:
        return ObservedFile(path=path, exists=False)
    return ObservedFile(path=path, exists=True, sha256=digest, mode=0o755)


def _state(target: str | None, backup: str | None) -> ObservedState:
    return ObservedState(target=_file(TARGET, target), backup=_file(BACKUP, backup))


ARTIFACT_FILE = _file(ARTIFACT, "b" * 64)


def _steps(plan) -> list[str]:
    return [a.id.rsplit(":", 1)[-1] for a in plan.actions]


class TestObservedState:
    @pytest.mark.parametrize(
        ("target", "backup", "phase"),
        [
            (None, None, Phase.ABSENT),
            ("a" * 64, None, Phase.INSTALLED),
            ("a" * 64, "c" * 64, Phase.INSTALLED_WITH_BACKUP),
            (None, "c" * 64, Phase.BACKUP_ONLY),
        ],
    )
    def test_phase(self, target, backup, phase):
        assert _state(target, backup).phase == phase

    def test_short_digest(self):
        assert _file(TARGET, "0123456789abcdef" * 4).short_digest() == "0123456789ab"
        assert _file(TARGET, None).short_digest() == "-"


class TestPlanInstall:
    def test_absent_target_installs_without_backup(self):
        plan = plan_install(_state(None, None), ARTIFACT_FILE, operation_id="op-1")

        assert _steps(plan) == ["install"]
        assert plan.from_phase == Phase.ABSENT
        assert plan.to_phase == Phase.INSTALLED
        assert plan.outcome == OUTCOME_INSTALLED
        assert plan.actions[0].id == "op-1:install"

    def test_install_action_sets_executable_mode_and_digest(self):
        plan = plan_install(_state(None, None), ARTIFACT_FILE)

        params = plan.actions[0].params
        assert params["operation"] == "copy"
        assert params["src"] == ARTIFACT
        assert params["dst"] == TARGET
        assert params["mode"] == EXECUTABLE_MODE
        assert params["expect_sha256"] == ARTIFACT_FILE.sha256

    def test_existing_target_is_backed_up_first(self):
        plan = plan_install(_state("a" * 64, None), ARTIFACT_FILE)

        assert _steps(plan) == ["backup", "install"]
        backup = plan.actions[0].params
        assert backup["src"] == TARGET
        assert backup["dst"] == BACKUP
        assert backup["mode"] is None
        assert backup["expect_sha256"] == "a" * 64
        assert plan.to_phase == Phase.INSTALLED_WITH_BACKUP
        assert not plan.warnings

    def test_existing_backup_is_overwritten_with_a_warning(self):
        plan = plan_install(_state("a" * 64, "c" * 64), ARTIFACT_FILE)

        assert _steps(plan) == ["backup", "install"]
        assert len(plan.warnings) == 1
        assert "will be overwritten" in plan.warnings[0]
        assert "cccccccccccc" in plan.warnings[0]

    def test_reinstalling_same_bytes_warns(self):
        plan = plan_install(_state("b" * 64, None), ARTIFACT_FILE)

        assert any("already matches" in w for w in plan.warnings)

    def test_stale_backup_without_target_is_left_alone(self):
        plan = plan_install(_state(None, "c" * 64), ARTIFACT_FILE)

        assert _steps(plan) == ["install"]
        assert plan.from_phase == Phase.BACKUP_ONLY
        assert plan.to_phase == Phase.INSTALLED_WITH_BACKUP
        assert any("left untouched" in w for w in plan.warnings)

    def test_plan_serializes(self):
        data = plan_install(_state("a" * 64, None), ARTIFACT_FILE, "op-x").to_dict()

        assert data["operation"] == "install"
        assert data["from_phase"] == "installed"
        assert data["noop"] is False
        assert [a["id"] for a in data["actions"]] == ["op-x:backup", "op-x:install"]


class TestPlanUninstall:
    def test_restore_when_backup_exists(self):
        plan = plan_uninstall(_state("b" * 64, "a" * 64))

        assert _steps(plan) == ["restore"]
        params = plan.actions[0].params
        assert params["operation"] == "move"
        assert params["src"] == BACKUP
        assert params["dst"] == TARGET
        assert params["ensure_executable"] is True
        assert plan.outcome == OUTCOME_RESTORED
        assert plan.to_phase == Phase.INSTALLED

    def test_remove_when_no_backup(self):
        plan = plan_uninstall(_state("b" * 64, None))

        assert _steps(plan) == ["remove"]
        assert plan.actions[0].params == {"operation": "remove", "path": TARGET}
        assert plan.outcome == OUTCOME_REMOVED
        assert plan.to_phase == Phase.ABSENT

    def test_nothing_to_uninstall(self):
        plan = plan_uninstall(_state(None, None))

        assert plan.noop
        assert plan.outcome == OUTCOME_NOTHING_TO_UNINSTALL
        assert plan.message == f"No {TARGET} found. Nothing to uninstall."
        assert plan.from_phase == plan.to_phase == Phase.ABSENT
        assert not plan.warnings

    def test_stale_backup_gets_manual_restore_hint(self):
        plan = plan_uninstall(_state(None, "a" * 64))

        assert plan.noop
        assert plan.to_phase == Phase.BACKUP_ONLY
        assert f"sudo mv {BACKUP} {TARGET}" in plan.warnings[0]


class TestOperationId:
    def test_format_and_uniqueness(self):
        first, second = generate_operation_id(), generate_operation_id()
        assert first.startswith("op-")
        assert len(first.split("-")) == 4
        assert first != second
