from dataclasses import dataclass

from .errors import ConfigurationError


@dataclass(frozen=True)
class RenditionSpec:
    name: str
    target_height: int  # ffmpeg scale target; width follows the source aspect ratio
    bandwidth: int      # advertised in the master playlist, bits/s
    width: int
    height: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


# Highest to lowest quality. Manifest entries are emitted in this order.
RENDITION_LADDER: tuple[RenditionSpec, ...] = (
    RenditionSpec("1080p", 1080, 5_000_000, 1920, 1080),
    RenditionSpec("720p", 720, 3_000_000, 1280, 720),
    RenditionSpec("480p", 480, 1_500_000, 854, 480),
    RenditionSpec("360p", 360, 800_000, 640, 360),
)


def rendition_names(ladder=RENDITION_LADDER) -> list[str]:
    return [r.name for r in ladder]


def lookup_rendition(name: str, ladder=RENDITION_LADDER) -> RenditionSpec:
    """Return the ladder entry for `name`; unknown names are a configuration bug."""
    for spec in ladder:
        if spec.name == name:
            return spec
    raise ConfigurationError(
        f"Unknown rendition {name!r}. Known: {rendition_names(ladder)}"
    )
