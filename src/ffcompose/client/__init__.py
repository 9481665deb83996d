"""Client module for fetching remote resources."""

from .downloader import ResourceDownloader, DownloadedFile, extension_for

__all__ = [
    "ResourceDownloader",
    "DownloadedFile",
    "extension_for",
]
