"""Error taxonomy shared by the dashboard core and the HTTP layer."""


class SavoraError(Exception):
    """Base class for every error raised by this package."""

    status_code = 500
    error_code = 'INTERNAL_ERROR'

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class ValidationError(SavoraError):
    status_code = 400
    error_code = 'INVALID_BOOKMARK'


class BookmarkNotFound(SavoraError):
    status_code = 404
    error_code = 'BOOKMARK_NOT_FOUND'

    def __init__(self, bookmark_id):
        self.bookmark_id = bookmark_id
        super().__init__('Bookmark not found')


class PendingBookmarkError(SavoraError):
    """The bookmark is still waiting for its create to be confirmed."""

    status_code = 409
    error_code = 'BOOKMARK_PENDING'

    def __init__(self, bookmark_id):
        self.bookmark_id = bookmark_id
        super().__init__('This bookmark is still being saved. Try again in a moment.')


class SessionRequired(SavoraError):
    status_code = 401
    error_code = 'SESSION_REQUIRED'

    def __init__(self, message='Sign in to continue'):
        super().__init__(message)


class AuthStartError(SavoraError):
    """The OAuth redirect could not be initiated."""

    status_code = 502
    error_code = 'AUTH_START_FAILED'


class BackendError(SavoraError):
    """Structured wrapper around anything the backend SDK raised."""

    status_code = 502
    error_code = 'BACKEND_ERROR'

    def __init__(self, operation, detail):
        self.operation = operation
        self.detail = detail
        super().__init__(f'{operation} failed: {detail}')


class MutationError(SavoraError):
    """A create, update or delete was rejected and rolled back locally."""

    status_code = 502
    error_code = 'MUTATION_FAILED'

    def __init__(self, operation, message, retryable=True, cause=None):
        self.operation = operation
        self.retryable = retryable
        self.cause = cause
        super().__init__(message)
