"""
Filesystem adapter — the only code that mutates the install and backup paths.

Operations:
    stat    read-only probe: existence, sha256, mode, size, owner
    copy    atomic copy: temp file in the destination directory, fsync,
            chmod, optional digest check, then os.replace over dst
    move    os.replace src → dst (atomic copy + unlink across devices)
    remove  unlink a file

A failed copy never leaves a half-written destination: the temp file is
removed and dst keeps whatever it held before.
"""

from __future__ import annotations

import errno
import hashlib
import logging
import os
import stat
import tempfile
from pathlib import Path

from binswap.adapters.base import Adapter, ExecutionContext
from binswap.core.models.action import Receipt

logger = logging.getLogger(__name__)

_CHUNK = 1024 * 1024

# operation → required params
OPERATIONS: dict[str, tuple[str, ...]] = {
    "stat": ("path",),
    "copy": ("src", "dst"),
    "move": ("src", "dst"),
    "remove": ("path",),
}


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def _fsync_dir(directory: Path) -> None:
    """Persist a rename by syncing its directory entry."""
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass  # not supported on every filesystem
    finally:
        os.close(fd)


def validate_params(operation: str, params: dict) -> tuple[bool, str]:
    """Shared param validation for the real and in-memory filesystems."""
    if not operation:
        return False, "Missing required param: 'operation'"
    if operation not in OPERATIONS:
        return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(OPERATIONS))}"
    for key in OPERATIONS[operation]:
        if not params.get(key):
            return False, f"Missing required param: '{key}' for {operation}"
    if operation in ("copy", "move") and str(params["src"]) == str(params["dst"]):
        return False, f"Source and destination are the same path: {params['src']}"
    return True, ""


class FilesystemAdapter(Adapter):
    """Real filesystem operations with receipts."""

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        return validate_params(params.get("operation", ""), params)

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        try:
            if operation == "stat":
                return self._stat(context)
            if operation == "copy":
                return self._copy(context)
            if operation == "move":
                return self._move(context)
            if operation == "remove":
                return self._remove(context)
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Unknown operation: {operation}",
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation},
            )

    # ── Operations ───────────────────────────────────────────────

    def _stat(self, ctx: ExecutionContext) -> Receipt:
        path = Path(ctx.params["path"])
        if not path.is_file():
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output="absent",
                metadata={"path": str(path), "exists": False},
            )
        st = path.stat()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output="present",
            metadata={
                "path": str(path),
                "exists": True,
                "sha256": sha256_file(path),
                "mode": stat.S_IMODE(st.st_mode),
                "size": st.st_size,
                "uid": st.st_uid,
            },
        )

    def _copy(self, ctx: ExecutionContext) -> Receipt:
        src = Path(ctx.params["src"])
        dst = Path(ctx.params["dst"])
        if not src.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Source not found: {src}",
            )

        mode = ctx.params.get("mode")
        if mode is None:
            mode = stat.S_IMODE(src.stat().st_mode)

        digest = self._atomic_copy(src, dst, mode, ctx.params.get("expect_sha256"))
        logger.info("Copied %s → %s (sha256 %s, mode %o)", src, dst, digest[:12], mode)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Copied {src} → {dst}",
            metadata={"src": str(src), "dst": str(dst), "sha256": digest, "mode": mode},
        )

    def _move(self, ctx: ExecutionContext) -> Receipt:
        src = Path(ctx.params["src"])
        dst = Path(ctx.params["dst"])
        if not src.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Source not found: {src}",
            )

        mode = stat.S_IMODE(src.stat().st_mode)
        if ctx.params.get("ensure_executable"):
            mode |= 0o111
            os.chmod(src, mode)

        try:
            os.replace(src, dst)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            logger.debug("Cross-device move %s → %s, falling back to copy", src, dst)
            self._atomic_copy(src, dst, mode, None)
            src.unlink()
            _fsync_dir(src.parent)
        _fsync_dir(dst.parent)

        logger.info("Moved %s → %s", src, dst)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Moved {src} → {dst}",
            metadata={"src": str(src), "dst": str(dst), "mode": mode},
        )

    def _remove(self, ctx: ExecutionContext) -> Receipt:
        path = Path(ctx.params["path"])
        if not path.exists() and not path.is_symlink():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Not found: {path}",
            )
        path.unlink()
        _fsync_dir(path.parent)
        logger.info("Removed %s", path)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed {path}",
            metadata={"path": str(path)},
        )

    # ── Helpers ──────────────────────────────────────────────────

    def _atomic_copy(self, src: Path, dst: Path, mode: int, expect_sha256: str | None) -> str:
        """Write src's bytes over dst via a same-directory temp file.

        Raises OSError on failure (including a digest mismatch); dst is
        untouched in that case.
        """
        dst.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=dst.parent, prefix=f".{dst.name}.", suffix=".tmp")
        tmp = Path(tmp_name)
        try:
            h = hashlib.sha256()
            with os.fdopen(fd, "wb") as out, src.open("rb") as inp:
                for chunk in iter(lambda: inp.read(_CHUNK), b""):
                    h.update(chunk)
                    out.write(chunk)
                out.flush()
                os.fchmod(out.fileno(), mode)
                os.fsync(out.fileno())
            digest = h.hexdigest()
            if expect_sha256 and digest != expect_sha256:
                raise OSError(
                    errno.EIO,
                    f"Digest mismatch copying {src}: expected {expect_sha256[:12]}, "
                    f"got {digest[:12]}",
                )
            os.replace(tmp, dst)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        _fsync_dir(dst.parent)
        return digest
