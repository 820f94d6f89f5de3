from pathlib import Path

import pytest

from transcoding.errors import TransientIOError
from transcoding.messages import JobDescriptor


class FakeFetcher:
    """Writes fixed bytes where the real fetcher would download the source."""

    def __init__(self, payload=b"source video bytes", error=None):
        self.payload = payload
        self.error = error
        self.calls = []

    def fetch(self, url, dest):
        self.calls.append((url, Path(dest)))
        if self.error:
            raise self.error
        Path(dest).write_bytes(self.payload)
        return Path(dest)


class FakeEncoder:
    """Produces a playlist and two segments per rendition, like ffmpeg would."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = []

    def encode(self, input_path, hls_dir, rendition):
        self.calls.append(rendition)
        if rendition == self.fail_on:
            raise TransientIOError(f"ffmpeg failed for {rendition} (exit 1)")
        out_dir = Path(hls_dir) / rendition
        out_dir.mkdir(parents=True, exist_ok=True)
        for i in range(2):
            (out_dir / f"segment_{i:03d}.ts").write_bytes(f"{rendition}-{i}".encode())
        # a stray file ffmpeg sometimes leaves behind; must never be uploaded
        (out_dir / "ffmpeg.log").write_text("log")
        playlist = out_dir / "playlist.m3u8"
        playlist.write_text("#EXTM3U\nsegment_000.ts\nsegment_001.ts\n")
        return playlist


class FakeS3:
    """Records uploads (bytes read at put time) and can fail on one key."""

    def __init__(self, fail_key=None):
        self.fail_key = fail_key
        self.objects = {}
        self.puts = []

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        if key == self.fail_key:
            raise OSError(f"connection reset while uploading {key}")
        self.puts.append((bucket, key, (ExtraArgs or {}).get("ContentType")))
        self.objects[key] = Path(filename).read_bytes()


@pytest.fixture
def job():
    return JobDescriptor(id="job-123", url="http://media.example/in.mp4", filename="in.mp4")


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def fake_s3():
    return FakeS3()


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / "workspaces"
    root.mkdir()
    return root
