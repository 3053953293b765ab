#!/usr/bin/env python3
"""
Installer Download Module
Fetches release artifacts to local storage with a bounded, fixed-delay retry loop.
"""

import logging
import os
import time
import uuid
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Union
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter

from update_errors import ConfigurationError, DownloadError

DEFAULT_MAX_ATTEMPTS = int(os.environ.get('CHOCO_DOWNLOAD_ATTEMPTS', '5'))
DEFAULT_RETRY_DELAY = float(os.environ.get('CHOCO_DOWNLOAD_DELAY', '2'))
DEFAULT_TIMEOUT = int(os.environ.get('CHOCO_DOWNLOAD_TIMEOUT', '60'))  # seconds per request
DEFAULT_EXTENSION = '.msi'
CHUNK_SIZE = 8192


def get_session(*, pool_connections: int = 2, pool_maxsize: int = 4) -> requests.Session:
    """Create an HTTP session for installer downloads.

    Transport-level retries stay disabled so download_with_retry is the only
    place attempts are counted.
    """
    session = requests.Session()
    session.headers.update({
        'User-Agent': (
            'Mozilla/5.0 (Windows NT 10.0; Win64; x64) '
            'AppleWebKit/537.36 (KHTML, like Gecko) '
            'Chrome/120.0.0.0 Safari/537.36'
        ),
        'Accept': '*/*',
        'Accept-Encoding': 'identity',
        'Connection': 'keep-alive',
    })
    adapter = HTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=0,
    )
    session.mount('http://', adapter)
    session.mount('https://', adapter)
    return session


def build_download_path(download_dir: Union[str, Path], role: str, url: str = '') -> Path:
    """Return a fresh, collision-free destination under download_dir (created if absent)"""
    directory = Path(download_dir)
    directory.mkdir(parents=True, exist_ok=True)
    # Drop any fragment/query so only the real file extension counts
    suffix = PurePosixPath(urlparse(url.split('#', 1)[0]).path).suffix if url else ''
    return directory / f"{role}-{time.time_ns()}-{uuid.uuid4().hex[:8]}{suffix or DEFAULT_EXTENSION}"


def download_file(url: str, destination: Path, session: requests.Session, timeout: int = DEFAULT_TIMEOUT) -> Path:
    """Stream url into destination, raising on transport or HTTP errors"""
    clean_url = url.split('#', 1)[0]
    with session.get(clean_url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with open(destination, 'wb') as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
    return destination


def download_with_retry(
    url: str,
    download_dir: Union[str, Path],
    role: str,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_RETRY_DELAY,
    timeout: int = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Path:
    """
    Download url into download_dir, retrying failed attempts

    Args:
        url: Source URL of the artifact
        download_dir: Directory receiving the file
        role: Variant label used in the file name (e.g. "32bit")
        max_attempts: Total attempts before giving up
        delay: Fixed pause in seconds between attempts
        timeout: Per-request timeout in seconds
        session: HTTP session to reuse
        sleep: Pause function (injectable for tests)

    Returns:
        Path of the downloaded file

    Raises:
        DownloadError: every attempt failed
    """
    if max_attempts < 1:
        raise ConfigurationError(f"max_attempts must be at least 1 (got {max_attempts})")
    if delay < 0:
        raise ConfigurationError(f"delay must not be negative (got {delay})")

    session = session or get_session()
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        destination = build_download_path(download_dir, role, url)
        logging.info(f"Downloading {role} installer (attempt {attempt}/{max_attempts}): {url}")
        try:
            download_file(url, destination, session, timeout=timeout)
            if destination.is_file():
                logging.info(f"Saved {role} installer to {destination}")
                return destination
            last_error = FileNotFoundError(f"download produced no file at {destination}")
        except (requests.RequestException, OSError) as e:
            last_error = e

        logging.warning(f"Attempt {attempt}/{max_attempts} for {url} failed: {last_error}")
        if attempt < max_attempts:
            sleep(delay)

    raise DownloadError(url, max_attempts, str(last_error)) from last_error
