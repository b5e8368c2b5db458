"""Error taxonomy for LaterStack operations.

Every failure a caller can see is one of these. Routers convert them into the
uniform ``{"success": false, "error": ...}`` body; anything else collapses to
GENERIC_ERROR_MESSAGE.
"""

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class LaterStackError(Exception):
    """Base class for user-facing failures."""

    code: str = "error"
    status_code: int = 500
    default_message: str = GENERIC_ERROR_MESSAGE
    retryable: bool = True

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(LaterStackError):
    code = "unauthenticated"
    status_code = 401
    default_message = "You must be signed in to save articles"


class InvalidInput(LaterStackError):
    code = "invalid_input"
    status_code = 400
    default_message = "Invalid input"


class UserProvisioningFailed(LaterStackError):
    code = "user_provisioning_failed"
    status_code = 503
    default_message = "Failed to create or find user account. Please try again."


class DuplicateArticle(LaterStackError):
    """The (user, url) pair already has a saved item. Retrying cannot succeed."""

    code = "duplicate_article"
    status_code = 409
    default_message = "You've already saved this article!"
    retryable = False


class ExtractionError(LaterStackError):
    """Base for content-extraction failures."""

    code = "extraction_failed"
    status_code = 502
    default_message = "Failed to extract article content. Please try again."


class ExtractionTimeout(ExtractionError):
    code = "extraction_timeout"
    status_code = 504
    default_message = "Request timed out. The site might be slow or unreachable."


class ExtractionFailed(ExtractionError):
    code = "extraction_failed"
    default_message = (
        "Could not extract article content. "
        "The page might be dynamic or behind authentication."
    )


class ContentTooShort(ExtractionError):
    code = "content_too_short"
    status_code = 422
    default_message = "Article content too short. This might be a paywall or error page."


class NotFound(LaterStackError):
    code = "not_found"
    status_code = 404
    default_message = "Article not found"
    retryable = False


class Unauthorized(LaterStackError):
    code = "unauthorized"
    status_code = 403
    default_message = "Unauthorized"
    retryable = False
