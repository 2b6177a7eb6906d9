import os
import logging
import threading
from pathlib import Path
from typing import Dict, Optional

import requests

from config import DEFAULT_MODEL_URL
from errors import AssetDirectoryError, NetworkError

MODEL_FILENAME = "tiny.pt"
CHUNK_SIZE = 1024 * 1024

# One lock per target path so concurrent first-time jobs download the model once
_download_locks: Dict[str, threading.Lock] = {}
_download_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = os.path.abspath(path)
    with _download_locks_guard:
        lock = _download_locks.get(key)
        if lock is None:
            lock = _download_locks[key] = threading.Lock()
        return lock


def model_path(cache_dir, filename: str = MODEL_FILENAME) -> Path:
    return Path(cache_dir) / filename


def is_model_present(cache_dir, filename: str = MODEL_FILENAME) -> bool:
    return model_path(cache_dir, filename).is_file()


def ensure_model(cache_dir, url: str = DEFAULT_MODEL_URL, filename: str = MODEL_FILENAME,
                 session: Optional[requests.Session] = None, timeout: int = 600) -> Path:
    """
    Make sure the Whisper checkpoint is present in cache_dir, downloading it on a miss.

    A cache hit touches no network. The download is streamed into a '.part' file and
    renamed into place only after the whole body arrived, so an interrupted transfer
    never leaves a file at the target path.

    Raises:
        AssetDirectoryError: cache directory cannot be created or written
        NetworkError: request failed, bad HTTP status or interrupted transfer
    """
    target = model_path(cache_dir, filename)
    if target.is_file():
        logging.info(f"Model found at: {target}")
        return target

    with _lock_for(target):
        # Another job may have finished the download while we waited
        if target.is_file():
            logging.info(f"Model found at: {target}")
            return target

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AssetDirectoryError(f"Cannot create model directory {target.parent}: {e}") from e

        logging.info(f"Downloading model {url} to: {target}")
        _download(url, target, session or requests, timeout)
        logging.info(f"Model downloaded successfully: {target}")
        return target


def _download(url: str, target: Path, http, timeout: int) -> None:
    partial = target.with_name(target.name + ".part")
    try:
        with http.get(url, stream=True, timeout=timeout) as response:
            if response.status_code != 200:
                raise NetworkError(f"Failed to download model: HTTP {response.status_code}")
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        os.replace(partial, target)
    except requests.RequestException as e:
        raise NetworkError(f"Failed to download model: {e}") from e
    except OSError as e:
        raise AssetDirectoryError(f"Cannot write model file {target}: {e}") from e
    finally:
        if partial.exists():
            partial.unlink()
