"""Error taxonomy for generation calls."""


class GenerationError(Exception):
    """Base exception for generation errors."""

    def __init__(self, message: str, error_type: str = "unknown", retryable: bool = False):
        super().__init__(message)
        self.error_type = error_type
        self.retryable = retryable


class MissingInputError(GenerationError):
    """Required input (plan, prompt, image) was not provided."""

    def __init__(self, message: str):
        super().__init__(message, error_type="missing_input")


class ContentBlockedError(GenerationError):
    """The provider refused the request."""

    def __init__(self, message: str):
        super().__init__(message, error_type="blocked_content")


class NoContentError(GenerationError):
    """The provider returned nothing usable."""

    def __init__(self, message: str):
        super().__init__(message, error_type="no_content")


class NonImageResponseError(GenerationError):
    """The provider answered, but not with an image."""

    def __init__(self, message: str):
        super().__init__(message, error_type="non_image_response")


class GenerationTimeoutError(GenerationError):
    """Bounded polling ran out of attempts."""

    def __init__(self, message: str):
        super().__init__(message, error_type="timeout")


class OperationError(GenerationError):
    """The provider reported an explicit failure."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message, error_type="operation_error", retryable=retryable)


class TransportError(GenerationError):
    """The artifact could not be retrieved after a successful operation."""

    def __init__(self, message: str):
        super().__init__(message, error_type="transport_failure")
