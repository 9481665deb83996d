"""Request-level operations: compose, process, file management and tool status."""

import os
from urllib.parse import urlparse
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ValidationError
from .client.downloader import DownloadedFile, ResourceDownloader
from .media.context import MediaContext, ToolStatus
from .media.composition import Composition
from .media.encoders import OutputOptions
from .media.imagemagick import ImageTool
from .media.operations import ChainResult, ProcessingChain
from .media.resources import Resource, guess_kind
from .media.workspace import ClearResult, FileListing, Workspace
from .core.types import ProgressCb
from .core.errors import EmptyResourceList, InvalidResourceParameters


class ComposeResponse(BaseModel):
    """Result of a compose request."""

    output_file: str
    path: str
    command: str


class ServiceStatus(BaseModel):
    """Availability of the external tools."""

    ffmpeg: ToolStatus
    imagemagick: ToolStatus


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", str(error))


class ComposeService:
    """Glue between request payloads and the media layer."""

    def __init__(
        self,
        workspace: Workspace,
        ctx: Optional[MediaContext] = None,
        downloader: Optional[ResourceDownloader] = None,
    ):
        """
        Initialize the service.

        Args:
            workspace: Directories for uploads, outputs and staged downloads
            ctx: Media context shared by every request
            downloader: Downloader for ``url`` resources (staging dir by default)
        """
        self.workspace = workspace
        self.ctx = ctx or MediaContext()
        self.downloader = downloader or ResourceDownloader(
            workspace.staging_dir, logger=self.ctx.logger
        )
        self.image_tool = ImageTool(self.ctx)

    def compose(
        self,
        payload: Dict[str, Any],
        on_progress: ProgressCb = None,
        timeout: Optional[float] = None,
    ) -> ComposeResponse:
        """
        Compose ``payload["resources"]`` into ``output/composed_<ms>.mp4``.

        Each resource names an uploaded ``filename`` or a remote ``url``;
        remote files are downloaded first and removed again afterwards, on
        success and on failure alike.

        Raises:
            EmptyResourceList: If no resources are given
            InvalidResourceParameters: For malformed resources or options
            ResourceNotFound: If an uploaded file does not exist
            DownloadFailure: If a remote resource cannot be fetched
            EncoderProcessFailure: If FFmpeg fails
        """
        items = payload.get("resources") or []
        if not isinstance(items, list) or not items:
            raise EmptyResourceList()

        try:
            options = OutputOptions.model_validate(
                {k: v for k, v in (payload.get("options") or {}).items() if v is not None}
            )
        except ValidationError as e:
            raise InvalidResourceParameters(
                f"Invalid output options: {_validation_message(e)}"
            )

        downloads: List[DownloadedFile] = []
        try:
            composition = Composition(options=options, ctx=self.ctx)
            for item in items:
                composition.add(self._resource(item, downloads))

            out_path = self.workspace.output_path("composed")
            result = composition.to_file(out_path, on_progress=on_progress, timeout=timeout)
        finally:
            for downloaded in downloads:
                self.workspace.remove_quietly(downloaded.path, self.ctx.logger)

        return ComposeResponse(
            output_file=os.path.basename(result.output_path),
            path=self.workspace.public_path(result.output_path),
            command=result.command,
        )

    def process(
        self, filename: str, operations: List[Any], timeout: Optional[float] = None
    ) -> ChainResult:
        """Run a chain of single-file operations on an upload."""
        return ProcessingChain(self.workspace, self.ctx).run(
            filename, operations, timeout=timeout
        )

    def download(self, url: str) -> DownloadedFile:
        """Fetch a remote file into the staging directory."""
        return self.downloader.download(url)

    def list_files(self, directory: str) -> FileListing:
        """List files in ``uploads`` or ``output``, newest first."""
        return self.workspace.list_files(directory)

    def delete_file(self, directory: str, filename: str) -> None:
        """
        Delete one file from ``uploads`` or ``output``.

        Raises:
            WorkspaceError: If the directory or file name is invalid
            ResourceNotFound: If the file does not exist
        """
        self.workspace.delete_file(directory, filename)
        self.ctx.logger.info(f"Deleted {directory}/{filename}")

    def clear_files(self, directory: str) -> ClearResult:
        """Delete every file in ``uploads`` or ``output`` and report the freed size."""
        result = self.workspace.clear(directory)
        self.ctx.logger.info(f"Cleared {result.deleted_count} files from {directory}")
        return result

    def status(self, refresh: bool = False) -> ServiceStatus:
        """Report FFmpeg and ImageMagick availability."""
        return ServiceStatus(
            ffmpeg=self.ctx.check_ffmpeg(refresh=refresh),
            imagemagick=self.image_tool.check(refresh=refresh),
        )

    def _resource(self, item: Dict[str, Any], downloads: List[DownloadedFile]) -> Resource:
        """Turn one request entry into a resource with a local path."""
        if not isinstance(item, dict):
            raise InvalidResourceParameters("Each resource must be an object")

        fields = {k: v for k, v in item.items() if v is not None}
        filename = fields.pop("filename", None)
        url = fields.pop("url", None)

        if not fields.get("type"):
            # Bare file names: infer the kind from the extension
            kind = guess_kind(filename or urlparse(url or "").path)
            if kind is None:
                raise InvalidResourceParameters(
                    "Resource must contain type and filename or url",
                    {"filename": filename, "url": url},
                )
            fields["type"] = kind.value

        if url:
            downloaded = self.downloader.download(url)
            downloads.append(downloaded)
            path = downloaded.path
        elif filename:
            path = self.workspace.resolve_upload(filename)
        else:
            raise InvalidResourceParameters("Resource must contain type and filename or url")

        try:
            return Resource.model_validate({**fields, "path": path})
        except ValidationError as e:
            raise InvalidResourceParameters(
                f"Invalid resource: {_validation_message(e)}",
                {"filename": filename, "url": url},
            )
