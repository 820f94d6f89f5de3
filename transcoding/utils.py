import logging
import shutil
from contextlib import contextmanager
from pathlib import Path

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def workspace_path(root: Path, job_id: str) -> Path:
    return Path(root) / f"video_{job_id}"


@contextmanager
def job_workspace(root: Path, job_id: str):
    """
    Exclusive scratch directory for one job, removed on every exit path.

    A leftover directory from a crashed run with the same id is wiped first.
    """
    path = workspace_path(root, job_id)
    try:
        if path.exists():
            logger.warning("Removing stale workspace %s", path)
            shutil.rmtree(path)
        path.mkdir(parents=True)
    except OSError as e:
        raise ConfigurationError(f"cannot create workspace {path}: {e}") from e

    try:
        yield path
    finally:
        logger.info("Cleaning up workspace for job %s", job_id)
        shutil.rmtree(path, ignore_errors=True)
        if path.exists():
            logger.error("Workspace %s could not be fully removed", path)
