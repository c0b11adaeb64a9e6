"""Exception types shared across the pipeline"""

from typing import Optional


class ReelcastError(Exception):
    """Base class for all pipeline errors"""


class PreconditionError(ReelcastError):
    """A run cannot start: missing prompts, avatar video or voice profile"""


class ProjectNotFoundError(ReelcastError):
    """No project or user record with the requested id"""


class ProjectBusyError(ReelcastError):
    """The project is already being processed by another run"""


class ExternalServiceError(ReelcastError):
    """A remote API call failed or returned an unusable response"""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class ImageGenerationError(ExternalServiceError):
    def __init__(self, message: str):
        super().__init__("image generation", message)


class TranscriptionError(ExternalServiceError):
    def __init__(self, message: str):
        super().__init__("transcription", message)


class ResourceError(ReelcastError):
    """Local scratch storage or an asset transfer failed"""


class DownloadError(ResourceError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to download {url}: {reason}")
        self.url = url


class GraphBuildError(ReelcastError):
    """Inputs cannot be turned into a filter graph"""


class InspectionError(ReelcastError):
    """ffprobe exited nonzero or produced output we could not parse"""

    def __init__(self, path: str, reason: str, stderr: Optional[str] = None):
        super().__init__(f"Could not inspect {path}: {reason}")
        self.path = path
        self.stderr = stderr
