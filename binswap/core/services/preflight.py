"""
Preflight — confirm the toolchain is usable before anything is built.

Three gates, run in order, stopping at the first failure:

    1. build tool      resolvable on the invoking user's PATH
    2. target          listed as installed for the invoking user;
                       installed on the spot if missing
    3. system compiler resolvable on the system PATH (not user-scoped)

None of them touch the install target or backup slot. The target
check is the only one with a side effect, and it lands in the invoking
user's toolchain, never root's.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field

from binswap.core.models.config import InstallerConfig
from binswap.core.models.identity import Identity
from binswap.core.models.outcome import FailureKind
from binswap.core.services.runner import CommandRunner

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of one preflight gate."""

    name: str
    ok: bool
    message: str = ""
    remediation: list[str] = field(default_factory=list)
    failure: FailureKind | None = None
    changed: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "ok": self.ok,
            "message": self.message,
            "remediation": self.remediation,
            "failure": self.failure.value if self.failure else None,
            "changed": self.changed,
        }


@dataclass
class PreflightReport:
    checks: list[CheckResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(c.ok for c in self.checks)

    @property
    def first_failure(self) -> CheckResult | None:
        return next((c for c in self.checks if not c.ok), None)

    def to_dict(self) -> dict:
        return {"ok": self.ok, "checks": [c.to_dict() for c in self.checks]}


def check_build_tool(runner: CommandRunner, user: Identity, config: InstallerConfig) -> CheckResult:
    tool = config.toolchain.build_tool
    path = runner.environment_for(user)["PATH"]
    found = shutil.which(tool, path=path)
    if found:
        logger.debug("Build tool %s found at %s for %s", tool, found, user.name)
        return CheckResult(name="build_tool", ok=True, message=f"{tool}: {found}")
    return CheckResult(
        name="build_tool",
        ok=False,
        message=f"{tool} not found on {user.name}'s PATH ({path})",
        remediation=list(config.remediation.build_tool),
        failure=FailureKind.MISSING_TOOLCHAIN,
    )


def target_listed(output: str, target: str) -> bool:
    """Whether a target-list output shows ``target`` as installed.

    Accepts both ``rustup target list --installed`` (bare names) and
    the full listing (``<target> (installed)``).
    """
    for line in output.splitlines():
        line = line.strip()
        if line == target or line == f"{target} (installed)":
            return True
    return False


def ensure_target(
    runner: CommandRunner,
    user: Identity,
    config: InstallerConfig,
    dry_run: bool = False,
) -> CheckResult:
    target = config.target
    listing = runner.run_as(
        user,
        config.expand_command(config.toolchain.target_list_command),
        action_id="preflight:target-list",
        description="List installed compilation targets",
        timeout=60,
    )
    if listing.failed:
        return CheckResult(
            name="target",
            ok=False,
            message=f"Cannot list installed targets: {listing.error}",
            failure=FailureKind.TARGET_INSTALL_FAILURE,
        )

    if target_listed(listing.output, target):
        return CheckResult(name="target", ok=True, message=f"{target} installed")

    add_command = config.expand_command(config.toolchain.target_add_command)
    if dry_run:
        return CheckResult(
            name="target",
            ok=True,
            message=f"{target} missing — would run: {' '.join(add_command)}",
        )

    logger.info("Installing compilation target %s for %s", target, user.name)
    added = runner.run_as(
        user,
        add_command,
        action_id="preflight:target-add",
        description=f"Install compilation target {target}",
        timeout=600,
        stream=True,
    )
    if added.failed:
        return CheckResult(
            name="target",
            ok=False,
            message=f"Failed to install target {target}: {added.error}",
            remediation=[f"Install it manually as {user.name}:", f"  {' '.join(add_command)}"],
            failure=FailureKind.TARGET_INSTALL_FAILURE,
        )
    return CheckResult(name="target", ok=True, message=f"{target} installed", changed=True)


def check_system_compiler(config: InstallerConfig) -> CheckResult:
    compiler = config.toolchain.system_compiler
    found = shutil.which(compiler, path=config.toolchain.system_path)
    if found:
        return CheckResult(name="system_compiler", ok=True, message=f"{compiler}: {found}")
    return CheckResult(
        name="system_compiler",
        ok=False,
        message=f"{compiler} not found on the system PATH",
        remediation=list(config.remediation.system_compiler),
        failure=FailureKind.MISSING_SYSTEM_COMPILER,
    )


def run_preflight(
    runner: CommandRunner,
    user: Identity,
    config: InstallerConfig,
    dry_run: bool = False,
) -> PreflightReport:
    """Run the gates in order, stopping at the first failure."""
    report = PreflightReport()

    report.checks.append(check_build_tool(runner, user, config))
    if not report.ok:
        return report

    report.checks.append(ensure_target(runner, user, config, dry_run=dry_run))
    if not report.ok:
        return report

    report.checks.append(check_system_compiler(config))
    return report
