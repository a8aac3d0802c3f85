"""Domain-specific exceptions for the product image pipeline."""


class ImagePipelineError(Exception):
    """Base class for image pipeline errors."""


class ClassificationError(ImagePipelineError):
    """Raised when an image payload cannot be decoded for measurement."""


class UploadError(ImagePipelineError):
    """Raised when the storage service rejects or fails an upload."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidResponseError(UploadError):
    """Raised when the storage service answers with an unusable URL."""


class UnsupportedMediaError(UploadError):
    """Raised when a file type is not an accepted image type."""


class PayloadTooLargeError(UploadError):
    """Raised when a file exceeds the configured upload size."""


class SessionExpiredError(UploadError):
    """Raised when the storage service rejects the admin token."""


class DeleteError(ImagePipelineError):
    """Raised when the storage service fails to delete an image."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PipelineBusyError(ImagePipelineError):
    """Raised when files are selected while a previous selection is in progress."""


class CropStateError(ImagePipelineError):
    """Raised when a crop action arrives with no active crop job."""
