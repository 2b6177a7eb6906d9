"""Tests for the Whisper checkpoint cache."""

import threading
from unittest.mock import MagicMock

import pytest
import requests

import model_manager
from errors import AssetDirectoryError, AssetUnavailableError, NetworkError


def make_session(status_code=200, chunks=(b"abc", b"def")):
    response = MagicMock()
    response.status_code = status_code
    response.iter_content.return_value = iter(chunks)
    session = MagicMock()
    session.get.return_value.__enter__.return_value = response
    return session


class TestEnsureModel:

    def test_cache_hit_makes_no_request(self, tmp_path):
        (tmp_path / "tiny.pt").write_bytes(b"cached")
        session = make_session()

        path = model_manager.ensure_model(tmp_path, url="http://models/tiny.pt", session=session)

        assert path == tmp_path / "tiny.pt"
        session.get.assert_not_called()

    def test_miss_downloads_once_then_hits_cache(self, tmp_path):
        cache_dir = tmp_path / "models"
        session = make_session()

        first = model_manager.ensure_model(cache_dir, url="http://models/tiny.pt", session=session)
        second = model_manager.ensure_model(cache_dir, url="http://models/tiny.pt", session=session)

        assert first == second == cache_dir / "tiny.pt"
        assert first.read_bytes() == b"abcdef"
        assert session.get.call_count == 1
        assert not (cache_dir / "tiny.pt.part").exists()

    def test_bad_status_leaves_no_file(self, tmp_path):
        session = make_session(status_code=404)

        with pytest.raises(NetworkError, match="404"):
            model_manager.ensure_model(tmp_path, url="http://models/tiny.pt", session=session)

        assert list(tmp_path.iterdir()) == []

    def test_interrupted_transfer_leaves_no_file(self, tmp_path):
        def broken_stream(chunk_size):
            yield b"abc"
            raise requests.ConnectionError("connection reset")

        session = make_session()
        response = session.get.return_value.__enter__.return_value
        response.iter_content.side_effect = broken_stream

        with pytest.raises(NetworkError, match="connection reset"):
            model_manager.ensure_model(tmp_path, url="http://models/tiny.pt", session=session)

        assert list(tmp_path.iterdir()) == []

    def test_request_error_is_network_error(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("timed out")

        with pytest.raises(AssetUnavailableError):
            model_manager.ensure_model(tmp_path, url="http://models/tiny.pt", session=session)

    def test_cache_dir_cannot_be_created(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")

        with pytest.raises(AssetDirectoryError):
            model_manager.ensure_model(blocker / "models", session=make_session())

    def test_concurrent_first_use_downloads_once(self, tmp_path):
        session = make_session()
        started = threading.Barrier(4)
        results = []

        def worker():
            started.wait()
            results.append(model_manager.ensure_model(tmp_path, url="http://models/tiny.pt", session=session))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(results)) == 1
        assert session.get.call_count == 1


def test_is_model_present(tmp_path):
    assert model_manager.is_model_present(tmp_path) is False
    (tmp_path / "tiny.pt").write_bytes(b"x")
    assert model_manager.is_model_present(tmp_path) is True
