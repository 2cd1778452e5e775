"""Application error taxonomy.

Each error carries the HTTP status it maps to; the handlers in
``inkwell.main`` render them as ``{"success": false, "message": ...}``.
"""


class BlogError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BlogError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(BlogError):
    status_code = 401
    default_message = "Unauthenticated"


class NotFound(BlogError):
    status_code = 404
    default_message = "Not found"


class Conflict(BlogError):
    status_code = 400
    default_message = "Resource already exists"


class StorageUnavailable(BlogError):
    status_code = 500
    default_message = "Storage unavailable"


class InternalError(BlogError):
    status_code = 500
