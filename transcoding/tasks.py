import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from django.conf import settings

from .encoder import FfmpegEncoder
from .errors import JobFailed, TransientIOError
from .fetch import SourceFetcher
from .ladder import RENDITION_LADDER
from .manifest import MASTER_PLAYLIST_NAME, write_master_playlist
from .messages import JobDescriptor
from .s3 import get_s3_client, upload_hls_tree
from .utils import job_workspace

logger = logging.getLogger(__name__)

PHASE_WORKSPACE = "workspace"
PHASE_FETCH = "fetch"
PHASE_ENCODE = "encode"
PHASE_MANIFEST = "manifest"
PHASE_UPLOAD = "upload"


@dataclass
class JobOutcome:
    job_id: str
    master_key: str
    uploaded_keys: list[str] = field(default_factory=list)
    duration_s: float = 0.0


@contextmanager
def _phase(job_id: str, name: str):
    """Tag any error raised inside the block with the phase it came from."""
    logger.info("Job %s: %s", job_id, name)
    try:
        yield
    except JobFailed:
        raise
    except OSError as e:
        raise JobFailed(job_id, name, TransientIOError(str(e))) from e
    except Exception as e:
        raise JobFailed(job_id, name, e) from e


class HlsJobProcessor:
    """
    Runs one job end to end: workspace -> fetch -> encode ladder -> master
    playlist -> upload -> cleanup.

    Collaborators are injected; `from_settings()` wires the production ones.
    """

    def __init__(self, *, fetcher, encoder, s3, bucket: str, workspace_root: Path,
                 ladder=RENDITION_LADDER):
        self.fetcher = fetcher
        self.encoder = encoder
        self.s3 = s3
        self.bucket = bucket
        self.workspace_root = Path(workspace_root)
        self.ladder = tuple(ladder)

    @classmethod
    def from_settings(cls, s3=None):
        return cls(
            fetcher=SourceFetcher(timeout=settings.HLS_FETCH_TIMEOUT),
            encoder=FfmpegEncoder(
                binary=settings.FFMPEG_BINARY,
                segment_seconds=settings.HLS_SEGMENT_SECONDS,
            ),
            s3=s3 or get_s3_client(),
            bucket=settings.S3_BUCKET,
            workspace_root=settings.HLS_WORKSPACE_ROOT,
        )

    def process(self, job: JobDescriptor) -> JobOutcome:
        start = time.time()
        logger.info("Starting processing video %s", job.id)

        try:
            with job_workspace(self.workspace_root, job.id) as tmp_dir:
                outcome = self._run(job, tmp_dir)
        except JobFailed:
            raise
        except Exception as e:
            # every later phase is already wrapped, so this is workspace setup
            raise JobFailed(job.id, PHASE_WORKSPACE, e) from e

        outcome.duration_s = time.time() - start
        logger.info("Successfully processed video %s in %.1fs", job.id, outcome.duration_s)
        return outcome

    def _run(self, job: JobDescriptor, tmp_dir: Path) -> JobOutcome:
        hls_dir = tmp_dir / "hls"
        source_dir = tmp_dir / "source"  # kept apart so no filename can collide with hls/
        names = [r.name for r in self.ladder]

        with _phase(job.id, PHASE_FETCH):
            source_dir.mkdir(parents=True, exist_ok=True)
            source = self.fetcher.fetch(job.url, source_dir / job.filename)

        # any failure aborts the job; a partial ladder is never published
        with _phase(job.id, PHASE_ENCODE):
            hls_dir.mkdir(parents=True, exist_ok=True)
            for name in names:
                logger.info("Processing video %s to %s resolution", job.id, name)
                self.encoder.encode(source, hls_dir, name)

        with _phase(job.id, PHASE_MANIFEST):
            write_master_playlist(hls_dir, names, self.ladder)

        with _phase(job.id, PHASE_UPLOAD):
            keys = upload_hls_tree(self.s3, self.bucket, hls_dir, job.id)

        return JobOutcome(
            job_id=job.id,
            master_key=f"{job.id}/{MASTER_PLAYLIST_NAME}",
            uploaded_keys=keys,
        )
