import json
import os
import re
from dataclasses import asdict, dataclass

from .errors import MalformedMessageError

# Job ids become directory names and object key prefixes.
_JOB_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


@dataclass(frozen=True)
class JobDescriptor:
    id: str
    url: str
    filename: str

    def to_payload(self) -> bytes:
        return json.dumps(asdict(self)).encode("utf-8")


def decode_job(body) -> JobDescriptor:
    """
    Build a JobDescriptor from a raw message body.

    Raises MalformedMessageError for anything that can never be processed:
    invalid JSON, a non-object payload, missing or non-string fields, or an
    id that is not safe to use as a path/key segment.
    """
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessageError(f"payload is not UTF-8: {e}") from e

    if isinstance(body, str):
        try:
            data = json.loads(body)
        except ValueError as e:
            raise MalformedMessageError(f"invalid JSON: {e}") from e
    else:
        data = body

    if not isinstance(data, dict):
        raise MalformedMessageError(f"expected a JSON object, got {type(data).__name__}")

    fields = {}
    for name in ("id", "url", "filename"):
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            raise MalformedMessageError(f"missing or empty field: {name}")
        fields[name] = value.strip()

    if data["id"] != fields["id"]:
        raise MalformedMessageError(f"job id has surrounding whitespace: {data['id']!r}")

    if not _JOB_ID_RE.match(fields["id"]) or ".." in fields["id"]:
        raise MalformedMessageError(f"unsafe job id: {fields['id']!r}")

    # keep only the final path component; the file lands inside the workspace
    filename = os.path.basename(fields["filename"].replace("\\", "/"))
    if filename in ("", ".", ".."):
        raise MalformedMessageError(f"unusable filename: {fields['filename']!r}")

    return JobDescriptor(id=fields["id"], url=fields["url"], filename=filename)
