"""
Identity resolution — who is running, and on whose behalf.

Under ``sudo`` the process is root but the build must run as the person
who typed the command. ``SUDO_USER`` names that person; without it (or
when not elevated) the invoking user is simply the current user.

Both functions take the environment and effective uid as optional
parameters so callers (and tests) can describe a process other than
the current one.
"""

from __future__ import annotations

import logging
import os
import pwd
from collections.abc import Mapping

from binswap.core.models.identity import Identity

logger = logging.getLogger(__name__)


def _effective_uid(euid: int | None) -> int:
    return os.geteuid() if euid is None else euid


def _from_passwd(entry: pwd.struct_passwd) -> Identity:
    return Identity(
        name=entry.pw_name,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        home=entry.pw_dir,
        shell=entry.pw_shell,
    )


def _env_int(environ: Mapping[str, str], key: str) -> int | None:
    value = environ.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def is_elevated(euid: int | None = None) -> bool:
    """Whether the process runs with superuser effective identity."""
    return _effective_uid(euid) == 0


def current_identity(euid: int | None = None, environ: Mapping[str, str] | None = None) -> Identity:
    """The identity the process itself runs as."""
    uid = _effective_uid(euid)
    try:
        return _from_passwd(pwd.getpwuid(uid))
    except KeyError:
        env = os.environ if environ is None else environ
        logger.warning("uid %d has no passwd entry — using environment for identity", uid)
        return Identity(
            name=env.get("USER") or str(uid),
            uid=uid,
            gid=os.getegid(),
            home=env.get("HOME", ""),
        )


def resolve_invoking_user(
    environ: Mapping[str, str] | None = None,
    euid: int | None = None,
) -> Identity:
    """The non-privileged user that build and toolchain steps run as.

    Never fails: falls back to the current identity whenever the sudo
    context is missing or cannot be resolved.
    """
    env = os.environ if environ is None else environ
    process = current_identity(euid, env)

    if not process.is_root:
        return process

    sudo_user = env.get("SUDO_USER")
    if not sudo_user or sudo_user == process.name:
        return process

    try:
        return _from_passwd(pwd.getpwnam(sudo_user))
    except KeyError:
        pass

    sudo_uid = _env_int(env, "SUDO_UID")
    sudo_gid = _env_int(env, "SUDO_GID")
    if sudo_uid is not None:
        logger.warning("SUDO_USER %r not in passwd — using SUDO_UID %d", sudo_user, sudo_uid)
        return Identity(
            name=sudo_user,
            uid=sudo_uid,
            gid=sudo_gid if sudo_gid is not None else sudo_uid,
            home="",
        )

    logger.warning("Cannot resolve SUDO_USER %r — using %s", sudo_user, process)
    return process
