"""Exception hierarchy for ffcompose."""

from typing import Optional, Dict, Any


class FFComposeError(Exception):
    """Base exception for all ffcompose errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation suitable for an error response."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ResourceNotFound(FFComposeError):
    """Exception raised when an input file does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Input file not found: {path}", {"path": path})
        self.path = path


class InvalidResourceParameters(FFComposeError):
    """Exception raised when geometry or timing parameters are malformed."""

    pass


class EmptyResourceList(FFComposeError):
    """Exception raised when a composition has no resources."""

    def __init__(self, message: str = "Resource list must not be empty"):
        super().__init__(message)


class NoVisualContent(FFComposeError):
    """Exception raised when a composition has no image or video resource."""

    def __init__(
        self, message: str = "At least one image or video resource is required"
    ):
        super().__init__(message)


class DownloadFailure(FFComposeError):
    """Exception raised when a remote resource cannot be fetched."""

    def __init__(
        self, url: str, reason: str, status_code: Optional[int] = None
    ):
        details: Dict[str, Any] = {"url": url}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(f"Download failed for {url}: {reason}", details)
        self.url = url
        self.status_code = status_code


class EncoderLaunchFailure(FFComposeError):
    """Exception raised when the encoder executable cannot be started."""

    pass


class EncoderProcessFailure(FFComposeError):
    """Exception raised when the encoder exits with a non-zero code."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
        command: Optional[str] = None,
    ):
        super().__init__(
            message, {"exit_code": exit_code, "command": command, "stderr": stderr}
        )
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = command


class EncoderTimeout(EncoderProcessFailure):
    """Exception raised when the encoder exceeds its time limit and is killed."""

    pass


class ImageToolFailure(FFComposeError):
    """Exception raised when an ImageMagick command fails."""

    pass


class WorkspaceError(FFComposeError):
    """Exception raised for invalid workspace directory or file requests."""

    pass
