"""Failure taxonomy for the vectorization pipeline.

Every error here is terminal for the request that raised it. The pipeline
converts them into failure results; nothing is retried.
"""


class VectorizerError(Exception):
    """Base class for pipeline failures with a user-facing message."""


class DecodeError(VectorizerError):
    """The payload is not a decodable image."""


class TracingError(VectorizerError):
    """The tracing engine failed or produced no usable output."""


class UnavailableSourceError(VectorizerError):
    """The requested image is no longer in the store."""

    def __init__(self, image_id):
        super().__init__(f"Image {image_id!r} is not available")
        self.image_id = image_id
