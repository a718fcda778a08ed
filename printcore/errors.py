"""
Error handling for the print production pipeline.

Provides specific exception types for each failure class and
context for operators retrying a failed render.
"""

from typing import Dict, List, Optional, Any


class PrintPipelineError(Exception):
    """Base exception for all print pipeline errors."""

    def __init__(self, message: str, details: Dict[str, Any] = None, suggestions: List[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'details': self.details,
            'suggestions': self.suggestions
        }


class InputValidationError(PrintPipelineError):
    """Raised when caller input is rejected before any I/O."""
    pass


class ExternalProviderError(PrintPipelineError):
    """Raised when an external service (upscaler, download host) fails."""
    pass


class StorageError(PrintPipelineError):
    """Raised when durable object storage fails."""
    pass


class RenderError(PrintPipelineError):
    """Raised when decoding or compositing image data fails."""
    pass


# Specific error classes for common failure modes

class UnknownSizeError(InputValidationError):
    """Raised when a size code is not in the size catalog."""

    def __init__(self, size_code: str, known_sizes: List[str] = None):
        super().__init__(
            f"Unknown sizeCode: {size_code}",
            details={
                'size_code': size_code,
                'known_sizes': known_sizes or []
            },
            suggestions=[
                "Use one of the size ids from config/sizes.yaml",
                "Check for case differences (size ids are lowercase, e.g. 'a4', '50x70')"
            ]
        )


class InvalidWallCornersError(InputValidationError):
    """Raised when a wall corner is not a finite (x, y) point."""

    def __init__(self, corner: Any, index: int):
        super().__init__(
            f"Invalid wall corner at index {index}: {corner!r}",
            details={
                'corner': repr(corner),
                'index': index
            },
            suggestions=[
                "Wall corners must be normalized points with finite x and y",
                "Re-mark the wall in the editor"
            ]
        )


class DesignNotFoundError(InputValidationError):
    """Raised when a design id does not resolve to a stored design."""

    def __init__(self, design_id: str):
        super().__init__(
            f"Design not found: {design_id}",
            details={'design_id': design_id},
            suggestions=["Verify the design id belongs to a completed generation or upload"]
        )


class UnsupportedUpscaleFactorError(InputValidationError):
    """Raised when the requested upscale factor is not 2, 4 or 8."""

    def __init__(self, factor: int):
        super().__init__(
            f"Unsupported upscale factor: {factor}. Use 2, 4, or 8.",
            details={'upscale_factor': factor},
            suggestions=["Omit the factor to use the per-size default"]
        )


class UpscaleProviderError(ExternalProviderError):
    """Raised when the upscaler fails or returns an unexpected shape."""

    def __init__(self, message: str, provider: str = None, output_type: str = None):
        super().__init__(
            message,
            details={
                'provider': provider,
                'output_type': output_type
            },
            suggestions=[
                "Retry the whole operation; no partial asset was written",
                "Check that the source image URL is publicly reachable",
                "Verify REPLICATE_API_TOKEN is set"
            ]
        )


class DownloadError(ExternalProviderError):
    """Raised when an image download returns a non-2xx status or fails."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = None):
        status = status_code if status_code is not None else 'no response'
        super().__init__(
            f"Failed to download image: {status}",
            details={
                'url': url,
                'status_code': status_code,
                'reason': reason
            },
            suggestions=[
                "Retry the whole operation",
                "Provider result URLs expire; regenerate the master if it is stale"
            ]
        )


class StorageUploadError(StorageError):
    """Raised when writing an object to storage fails."""

    def __init__(self, path: str, backend: str, reason: str = None):
        super().__init__(
            f"Storage upload failed for {path}: {reason}",
            details={
                'path': path,
                'backend': backend,
                'reason': reason
            },
            suggestions=[
                "Retry the whole operation; no asset row was written",
                "Check storage credentials and bucket configuration"
            ]
        )


class QualityAdvisory:
    """Non-fatal note that an asset falls short of its target DPI.

    Recorded on the asset instead of being raised: production ships the
    best available file.
    """

    def __init__(self, size_code: str, target_dpi: int,
                 actual_width_px: int, actual_height_px: int,
                 required_width_px: int, required_height_px: int):
        self.size_code = size_code
        self.target_dpi = target_dpi
        self.actual_width_px = actual_width_px
        self.actual_height_px = actual_height_px
        self.required_width_px = required_width_px
        self.required_height_px = required_height_px

    @property
    def message(self) -> str:
        return (f"{self.actual_width_px}x{self.actual_height_px} does not meet "
                f"{self.target_dpi} DPI target {self.required_width_px}x{self.required_height_px} "
                f"for {self.size_code}")

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            'size_code': self.size_code,
            'target_dpi': self.target_dpi,
            'actual': [self.actual_width_px, self.actual_height_px],
            'required': [self.required_width_px, self.required_height_px],
            'message': self.message
        }


# Error recovery

def create_error_recovery_suggestions(error: Exception, context: Dict[str, Any] = None) -> List[str]:
    """Generate contextual recovery suggestions for any error."""
    suggestions = []

    if isinstance(error, PrintPipelineError):
        suggestions.extend(error.suggestions)

    if context:
        if context.get('master_missing'):
            suggestions.append("Run ensure-master for this size before rendering")

        if context.get('storage_failures', 0) > 0:
            suggestions.append("Check that the storage backend is reachable")

        if context.get('effective_dpi', 300) < 150:
            suggestions.append("Choose a smaller print size or a higher upscale factor")

    if not suggestions:
        suggestions = [
            "Retry the operation",
            "Check the logs for the failing pipeline step",
            "Contact support if the problem persists"
        ]

    return suggestions
