"""Per-job scratch directory with guaranteed teardown."""

import atexit
import functools
import shutil
import signal
import tempfile
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from aws_lambda_powertools import Logger

from ..shared.exceptions import WorkspaceError

logger = Logger(service="transcode-worker", child=True)

OUTPUT_DIR_NAME = "hls"
SOURCE_STEM = "source"


@dataclass(frozen=True)
class Workspace:
    """Directory exclusively owned by one job."""

    path: Path

    @property
    def output_root(self) -> Path:
        """Root of the HLS tree that gets published."""
        return self.path / OUTPUT_DIR_NAME

    def input_path(self, suffix: str = "") -> Path:
        """Fixed location the source object is downloaded to."""
        return self.path / f"{SOURCE_STEM}{suffix}"


def workspace_dir_name(name: str, timestamp_ms: int | None = None) -> str:
    """Build the workspace directory prefix.

    A random suffix is appended on creation, so two jobs for the same upload
    started in the same millisecond still get separate directories.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{name}-{timestamp_ms}"


def _terminate(signum: int, frame: object) -> None:
    raise SystemExit(128 + signum)


@contextmanager
def _exit_on_sigterm() -> Iterator[None]:
    """Turn SIGTERM into SystemExit for the duration of the block.

    atexit hooks do not run when the process is killed by a signal, so the
    runtime's shutdown signal is converted into a normal unwind. Signal
    handlers can only be installed from the main thread; elsewhere this is a
    no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.signal(signal.SIGTERM, _terminate)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


@contextmanager
def job_workspace(root: str | Path, name: str) -> Iterator[Workspace]:
    """Create a workspace and remove it on every exit path.

    Normal returns and exceptions are handled by the scope itself. SIGTERM is
    converted into SystemExit while the scope is open, and an atexit hook
    covers interpreter shutdown. The hook is unregistered once the normal
    teardown has run.

    Args:
        root: Parent directory for workspaces
        name: Job name used as the directory prefix

    Yields:
        The created Workspace

    Raises:
        WorkspaceError: If the directory cannot be created
    """
    root = Path(root)

    try:
        root.mkdir(parents=True, exist_ok=True)
        path = Path(tempfile.mkdtemp(prefix=f"{workspace_dir_name(name)}-", dir=root))
        (path / OUTPUT_DIR_NAME).mkdir()
    except OSError as e:
        raise WorkspaceError(
            f"Could not create workspace under {root}: {e}",
            {"root": str(root), "name": name, "error": str(e)},
        ) from e

    teardown = functools.partial(remove_workspace, path)
    atexit.register(teardown)
    logger.debug("Workspace created", extra={"workspace": str(path)})

    try:
        with _exit_on_sigterm():
            yield Workspace(path=path)
    finally:
        teardown()
        atexit.unregister(teardown)


def remove_workspace(path: Path) -> bool:
    """Recursively and forcibly remove a workspace.

    Failures are logged and never raised, so they cannot change the outcome
    of the job being torn down.

    Returns:
        True if the directory no longer exists
    """
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(
            "Workspace cleanup failed",
            extra={"workspace": str(path), "error": str(e)},
        )
        return False

    logger.debug("Workspace removed", extra={"workspace": str(path)})
    return True
