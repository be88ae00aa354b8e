"""Error taxonomy for the physique pipeline.

Everything raised by the pipeline derives from ``PhysiqueError`` so the route
layer can map failures to HTTP responses without catching bare exceptions.
"""

from typing import Optional


class PhysiqueError(Exception):
    """Base class for physique pipeline failures."""


class AIEmptyResponseError(PhysiqueError):
    """The completion provider answered with no content."""

    def __init__(self, message: str = "Empty AI response"):
        super().__init__(message)


class MalformedAIOutputError(PhysiqueError):
    """The provider answered, but the text is not valid JSON for the schema."""

    def __init__(self, message: str = "AI returned malformed data", raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class ImageGenerationError(PhysiqueError):
    """The image provider failed for a reason other than a safety rejection."""


class ImageSafetyRejectionError(ImageGenerationError):
    """The image provider refused the photo on safety grounds."""

    USER_MESSAGE = (
        "Your photo was flagged by the image safety filter. Try using a photo "
        "from the neck or chin down. Photos without faces are much less likely "
        "to be flagged."
    )

    def __init__(self, message: str = USER_MESSAGE):
        super().__init__(message)
        self.user_message = message


class ExternalTimeoutError(PhysiqueError):
    """An external call did not finish within the configured bound."""


class StorageError(PhysiqueError):
    """Object storage rejected an upload or URL request."""


class CompositeError(PhysiqueError):
    """Face-preserving composite could not be produced."""


class ImageFetchError(CompositeError):
    """A source image for compositing could not be downloaded."""
