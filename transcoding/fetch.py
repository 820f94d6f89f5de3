import logging
from pathlib import Path

import requests

from .errors import TransientIOError

logger = logging.getLogger(__name__)


class SourceFetcher:
    """
    Downloads a job's source video with one blocking GET.

    The session is injected so tests (and callers wanting retries/adapters)
    can substitute the transport. `timeout=None` waits forever.
    """

    def __init__(self, session: requests.Session | None = None, timeout: float | None = None,
                 chunk_size: int = 1024 * 1024):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.chunk_size = chunk_size

    def fetch(self, url: str, dest: Path) -> Path:
        dest = Path(dest)
        logger.info("Downloading source %s -> %s", url, dest)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as resp:
                if not 200 <= resp.status_code < 300:
                    raise TransientIOError(f"GET {url} returned status {resp.status_code}")
                with open(dest, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise TransientIOError(f"GET {url} failed: {e}") from e
        except OSError as e:
            raise TransientIOError(f"could not write {dest}: {e}") from e

        logger.info("Downloaded %s (%d bytes)", dest.name, dest.stat().st_size)
        return dest
