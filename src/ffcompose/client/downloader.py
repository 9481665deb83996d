"""Download remote media into the workspace staging directory."""

import os
import random
import time
import requests
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse
from pydantic import BaseModel
from ..__version__ import __version__
from ..core.errors import DownloadFailure

# Content-Type to extension, used when the URL path has no extension
MIME_EXTENSIONS = {
    "video/mp4": ".mp4",
    "video/avi": ".avi",
    "video/quicktime": ".mov",
    "video/x-msvideo": ".avi",
    "video/webm": ".webm",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
}

DEFAULT_EXTENSION = ".mp4"
_CHUNK_SIZE = 64 * 1024


class DownloadedFile(BaseModel):
    """A remote resource saved to local disk."""

    filename: str
    path: str
    size: int
    original_url: str


def extension_for(url: str, content_type: Optional[str] = None) -> str:
    """
    Pick a file extension for a download.

    The URL path wins; otherwise the ``Content-Type`` header is mapped; the
    fallback is ``.mp4``.
    """
    extension = Path(urlparse(url).path).suffix.lower()
    if extension:
        return extension
    if content_type:
        mime = content_type.split(";")[0].strip().lower()
        return MIME_EXTENSIONS.get(mime, DEFAULT_EXTENSION)
    return DEFAULT_EXTENSION


class ResourceDownloader:
    """Fetches remote resources over HTTP(S) with requests."""

    def __init__(
        self,
        target_dir: str,
        session: Optional[requests.Session] = None,
        timeout: float = 300.0,
        logger=None,
    ):
        """
        Initialize the downloader.

        Args:
            target_dir: Directory receiving downloaded files
            session: Optional requests session to use
            timeout: Request timeout in seconds
            logger: Logger for download messages
        """
        self.target_dir = target_dir
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logger

        self.session.headers.update({"User-Agent": f"ffcompose/{__version__}"})

    def download(self, url: str) -> DownloadedFile:
        """
        Download ``url`` as ``downloaded_<ms>-<random><ext>``.

        Raises:
            DownloadFailure: For invalid URLs, non-200 responses, timeouts and
                connection errors
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise DownloadFailure(url, "Invalid URL")

        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.exceptions.Timeout:
            raise DownloadFailure(url, f"Request timed out after {self.timeout} seconds")
        except requests.exceptions.ConnectionError:
            raise DownloadFailure(url, "Failed to connect")
        except requests.exceptions.RequestException as e:
            raise DownloadFailure(url, f"Request failed: {str(e)}")

        with response:
            if response.status_code != 200:
                raise DownloadFailure(
                    url, f"HTTP {response.status_code}", response.status_code
                )

            ext = extension_for(url, response.headers.get("Content-Type"))
            suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
            filename = f"downloaded_{suffix}{ext}"
            path = os.path.join(self.target_dir, filename)

            os.makedirs(self.target_dir, exist_ok=True)
            try:
                with open(path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            except (OSError, requests.exceptions.RequestException) as e:
                if os.path.exists(path):
                    os.remove(path)
                raise DownloadFailure(url, f"Failed to write download: {e}")

        size = os.path.getsize(path)
        if self.logger:
            self.logger.info(f"Downloaded {url} -> {path} ({size} bytes)")

        return DownloadedFile(filename=filename, path=path, size=size, original_url=url)
