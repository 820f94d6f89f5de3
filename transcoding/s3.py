import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from .errors import TransientIOError

logger = logging.getLogger(__name__)

# Only HLS playlists and segments are published; anything else in the tree is ignored.
HLS_CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/mp2t",
}


@dataclass(frozen=True)
class HlsArtifact:
    path: Path
    key: str
    content_type: str


def get_s3_client():
    """
    SDK client for server-side upload.
    """
    session = boto3.session.Session(
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )
    return session.client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,  # e.g. http://127.0.0.1:9000
        config=BotoConfig(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        ),
    )


def ensure_bucket(s3, bucket: str) -> bool:
    """
    Create `bucket` if it does not exist yet. Returns True when it was created.
    """
    try:
        s3.head_bucket(Bucket=bucket)
        logger.info("Bucket already exists: %s", bucket)
        return False
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        if code not in ("404", "NoSuchBucket", "NotFound"):
            raise TransientIOError(f"could not check bucket {bucket}: {e}") from e
    except BotoCoreError as e:
        raise TransientIOError(f"could not check bucket {bucket}: {e}") from e

    try:
        s3.create_bucket(Bucket=bucket)
    except (ClientError, BotoCoreError) as e:
        raise TransientIOError(f"could not create bucket {bucket}: {e}") from e
    logger.info("Created bucket: %s", bucket)
    return True


def object_key(job_id: str, root: Path, path: Path) -> str:
    rel = Path(path).relative_to(root)
    return f"{job_id}/{rel.as_posix()}".replace("\\", "/")  # Windows safety


def _upload_order(root: Path, path: Path):
    rel = path.relative_to(root)
    # rendition files first, root-level (master) playlist last;
    # inside a rendition, segments before the playlist that lists them
    return (len(rel.parts) == 1, path.suffix.lower() == ".m3u8", rel.as_posix())


def iter_hls_artifacts(root: Path, job_id: str) -> Iterator[HlsArtifact]:
    """
    Yield every uploadable file under `root` in publish order.

    Each call walks the tree afresh, so the sequence can be restarted.
    """
    root = Path(root)
    files = [p for p in root.rglob("*") if p.is_file() and p.suffix.lower() in HLS_CONTENT_TYPES]
    for p in sorted(files, key=lambda p: _upload_order(root, p)):
        yield HlsArtifact(
            path=p,
            key=object_key(job_id, root, p),
            content_type=HLS_CONTENT_TYPES[p.suffix.lower()],
        )


def upload_file(s3, bucket: str, local_path, key: str, content_type: str | None = None):
    """
    Upload a single file to S3/MinIO with an optional Content-Type.
    Puts overwrite, so re-uploading the same key is harmless.
    """
    extra = {}
    if content_type:
        extra["ContentType"] = content_type
    try:
        s3.upload_file(str(local_path), bucket, key, ExtraArgs=extra or None)
    except (S3UploadFailedError, ClientError, BotoCoreError, OSError) as e:
        raise TransientIOError(f"failed to upload {key}: {e}") from e


def upload_hls_tree(s3, bucket: str, root: Path, job_id: str) -> list[str]:
    """
    Upload all HLS artifacts under `root` to `<job_id>/...`.
    Stops at the first failed put. Returns keys in upload order.
    """
    uploaded = []
    for artifact in iter_hls_artifacts(root, job_id):
        logger.info("Uploading %s as %s", artifact.path, artifact.key)
        upload_file(s3, bucket, artifact.path, artifact.key, content_type=artifact.content_type)
        uploaded.append(artifact.key)
    logger.info("Uploaded %d HLS files for job %s", len(uploaded), job_id)
    return uploaded
