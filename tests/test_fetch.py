"""Tests for source retrieval through an injected requests session."""

from unittest.mock import MagicMock

import pytest
import requests

from transcoding.errors import TransientIOError
from transcoding.fetch import SourceFetcher


def session_returning(status_code, chunks=()):
    resp = MagicMock()
    resp.status_code = status_code
    resp.iter_content.return_value = list(chunks)
    session = MagicMock()
    session.get.return_value.__enter__.return_value = resp
    return session


class TestSourceFetcher:
    def test_streams_body_to_destination(self, tmp_path):
        session = session_returning(200, [b"abc", b"", b"def"])
        dest = tmp_path / "in.mp4"

        result = SourceFetcher(session=session).fetch("http://media.example/in.mp4", dest)

        assert result == dest
        assert dest.read_bytes() == b"abcdef"
        session.get.assert_called_once_with("http://media.example/in.mp4", stream=True, timeout=None)

    def test_timeout_passed_to_transport(self, tmp_path):
        session = session_returning(200, [b"x"])

        SourceFetcher(session=session, timeout=30).fetch("http://media.example/in.mp4", tmp_path / "in.mp4")

        assert session.get.call_args.kwargs["timeout"] == 30

    @pytest.mark.parametrize("status", [404, 500, 503])
    def test_non_success_status_fails(self, tmp_path, status):
        session = session_returning(status)

        with pytest.raises(TransientIOError, match=str(status)):
            SourceFetcher(session=session).fetch("http://media.example/in.mp4", tmp_path / "in.mp4")

    def test_transport_error_is_transient(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(TransientIOError, match="connection refused"):
            SourceFetcher(session=session).fetch("http://media.example/in.mp4", tmp_path / "in.mp4")

    def test_unwritable_destination_is_transient(self, tmp_path):
        session = session_returning(200, [b"x"])

        with pytest.raises(TransientIOError):
            SourceFetcher(session=session).fetch("http://media.example/in.mp4", tmp_path / "missing" / "in.mp4")
