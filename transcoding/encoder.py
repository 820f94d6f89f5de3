import logging
import subprocess
from pathlib import Path

from .errors import TransientIOError
from .ladder import RENDITION_LADDER, lookup_rendition

logger = logging.getLogger(__name__)

PLAYLIST_NAME = "playlist.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"


class FfmpegEncoder:
    """Runs one ffmpeg HLS invocation per rendition."""

    def __init__(self, binary: str = "ffmpeg", segment_seconds: int = 10, ladder=RENDITION_LADDER):
        self.binary = binary
        self.segment_seconds = segment_seconds
        self.ladder = ladder

    def build_command(self, input_path: Path, out_dir: Path, height: int) -> list[str]:
        return [
            self.binary,
            "-y",
            "-i", str(input_path),
            "-vf", f"scale=-2:{height}",  # keep aspect ratio, even width
            "-c:v", "libx264",
            "-c:a", "aac",
            "-hls_time", str(self.segment_seconds),
            "-hls_list_size", "0",  # keep every segment in the playlist
            "-hls_segment_filename", str(out_dir / SEGMENT_PATTERN),
            "-f", "hls",
            str(out_dir / PLAYLIST_NAME),
        ]

    def encode(self, input_path: Path, hls_dir: Path, rendition: str) -> Path:
        """
        Transcode `input_path` into `hls_dir/<rendition>/playlist.m3u8` + segments.
        Returns the playlist path.
        """
        spec = lookup_rendition(rendition, self.ladder)

        out_dir = Path(hls_dir) / spec.name
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransientIOError(f"could not create {out_dir}: {e}") from e

        cmd = self.build_command(Path(input_path), out_dir, spec.target_height)
        logger.debug("Running %s", " ".join(cmd))
        try:
            subprocess.run(
                cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                start_new_session=True,  # terminal SIGINT reaches the worker only
            )
        except subprocess.CalledProcessError as e:
            err = e.stderr.decode("utf-8", errors="ignore") if e.stderr else ""
            raise TransientIOError(
                f"ffmpeg failed for {spec.name} (exit {e.returncode}): {err[-2000:]}"
            ) from e
        except OSError as e:
            raise TransientIOError(f"could not start {self.binary}: {e}") from e

        logger.info("Encoded %s rendition", spec.name)
        return out_dir / PLAYLIST_NAME
