"""Workspace directories for uploads, outputs and download staging."""

import os
import time
from datetime import datetime
from typing import List, Optional, Union
from pydantic import BaseModel
from ..core.types import Directory
from ..core.errors import ResourceNotFound, WorkspaceError

_SIZE_UNITS = ["B", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    """Render a byte count as ``1.5 KB`` style text."""
    if size == 0:
        return "0 B"
    i = 0
    value = float(size)
    while value >= 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[i]}"


class FileInfo(BaseModel):
    """Entry of a directory listing."""

    name: str
    size: int
    size_formatted: str
    modified: datetime
    url: str


class FileListing(BaseModel):
    """Files in one workspace directory, newest first."""

    directory: Directory
    files: List[FileInfo]
    total_size: int
    total_size_formatted: str


class ClearResult(BaseModel):
    """Outcome of clearing a directory."""

    deleted_count: int
    total_size: int
    total_size_formatted: str


class Workspace:
    """Disk layout shared by compose and processing requests."""

    def __init__(self, root: str):
        """
        Initialize workspace and create its directories.

        Args:
            root: Base directory holding ``uploads``, ``output`` and ``template``
        """
        self.root = os.path.abspath(root)
        self.uploads_dir = os.path.join(self.root, "uploads")
        self.output_dir = os.path.join(self.root, "output")
        self.staging_dir = os.path.join(self.root, "template")

        for directory in (self.uploads_dir, self.output_dir, self.staging_dir):
            os.makedirs(directory, exist_ok=True)

    def directory_path(self, directory: Union[Directory, str]) -> str:
        """Absolute path of a listable directory."""
        try:
            directory = Directory(directory)
        except ValueError:
            raise WorkspaceError(
                "Invalid directory, must be 'uploads' or 'output'",
                {"directory": str(directory)},
            )
        return self.uploads_dir if directory == Directory.UPLOADS else self.output_dir

    def resolve_upload(self, filename: str) -> str:
        """
        Path of an uploaded file.

        Raises:
            WorkspaceError: If the name tries to leave the uploads directory
            ResourceNotFound: If the file does not exist
        """
        self._check_filename(filename)
        path = os.path.join(self.uploads_dir, filename)
        if not os.path.exists(path):
            raise ResourceNotFound(filename)
        return path

    def output_path(self, prefix: str, ext: str = ".mp4") -> str:
        """Timestamped path in the output directory, e.g. ``composed_<ms>.mp4``."""
        stamp = int(time.time() * 1000)
        name = f"{prefix}_{stamp}{ext}"
        return os.path.join(self.output_dir, name)

    def public_path(self, path: str) -> str:
        """URL path under which an output or upload file is served."""
        parent = os.path.basename(os.path.dirname(os.path.abspath(path)))
        return f"/{parent}/{os.path.basename(path)}"

    def list_files(self, directory: Union[Directory, str]) -> FileListing:
        """List regular files in ``uploads`` or ``output``, newest first."""
        dir_path = self.directory_path(directory)
        directory = Directory(directory)

        files: List[FileInfo] = []
        if os.path.isdir(dir_path):
            for name in os.listdir(dir_path):
                path = os.path.join(dir_path, name)
                if not os.path.isfile(path):
                    continue
                stat = os.stat(path)
                files.append(
                    FileInfo(
                        name=name,
                        size=stat.st_size,
                        size_formatted=format_file_size(stat.st_size),
                        modified=datetime.fromtimestamp(stat.st_mtime),
                        url=f"/{directory.value}/{name}",
                    )
                )

        files.sort(key=lambda f: f.modified, reverse=True)
        total = sum(f.size for f in files)
        return FileListing(
            directory=directory,
            files=files,
            total_size=total,
            total_size_formatted=format_file_size(total),
        )

    def delete_file(self, directory: Union[Directory, str], filename: str) -> None:
        """
        Delete one file from ``uploads`` or ``output``.

        Raises:
            WorkspaceError: If the directory or file name is invalid
            ResourceNotFound: If the file does not exist
        """
        dir_path = self.directory_path(directory)
        self._check_filename(filename)

        path = os.path.join(dir_path, filename)
        if not os.path.abspath(path).startswith(dir_path):
            raise WorkspaceError("Invalid file path", {"filename": filename})
        if not os.path.exists(path):
            raise ResourceNotFound(filename)

        os.remove(path)

    def clear(self, directory: Union[Directory, str]) -> ClearResult:
        """Delete every regular file in ``uploads`` or ``output``."""
        dir_path = self.directory_path(directory)
        deleted = 0
        total = 0

        if os.path.isdir(dir_path):
            for name in os.listdir(dir_path):
                path = os.path.join(dir_path, name)
                if os.path.isfile(path):
                    total += os.path.getsize(path)
                    os.remove(path)
                    deleted += 1

        return ClearResult(
            deleted_count=deleted,
            total_size=total,
            total_size_formatted=format_file_size(total),
        )

    def remove_quietly(self, path: Optional[str], logger=None) -> None:
        """Best-effort removal of a temporary file; failures are only logged."""
        if not path or not os.path.exists(path):
            return
        try:
            os.remove(path)
        except OSError as e:
            if logger:
                logger.warning(f"Failed to remove temporary file {path}: {e}")

    @staticmethod
    def _check_filename(filename: str) -> None:
        if not filename:
            raise WorkspaceError("File name must not be empty")
        if ".." in filename or "/" in filename or "\\" in filename:
            raise WorkspaceError(
                "File name contains illegal characters", {"filename": filename}
            )
