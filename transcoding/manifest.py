from pathlib import Path

from .encoder import PLAYLIST_NAME
from .errors import TransientIOError
from .ladder import RENDITION_LADDER, lookup_rendition

MASTER_PLAYLIST_NAME = "master.m3u8"


def build_master_playlist(names, ladder=RENDITION_LADDER) -> str:
    """Master playlist text: fixed header, then one variant per rendition in list order."""
    lines = ["#EXTM3U", "#EXT-X-VERSION:3", ""]
    for name in names:
        spec = lookup_rendition(name, ladder)
        lines.append(f"#EXT-X-STREAM-INF:BANDWIDTH={spec.bandwidth},RESOLUTION={spec.resolution}")
        lines.append(f"{spec.name}/{PLAYLIST_NAME}")
        lines.append("")
    return "\n".join(lines) + "\n"


def write_master_playlist(hls_dir: Path, names, ladder=RENDITION_LADDER) -> Path:
    text = build_master_playlist(names, ladder)
    path = Path(hls_dir) / MASTER_PLAYLIST_NAME
    try:
        # newline="" so the bytes are identical on every host
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise TransientIOError(f"could not write {path}: {e}") from e
    return path
