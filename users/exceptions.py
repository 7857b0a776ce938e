"""
Error taxonomy for the auth flow.

Services raise these; views turn them into the JSON envelope with
``error_response``. Error codes (errno):

0x10 - Missing/invalid login fields
0x11 - Invalid credentials
0x20 - Missing/invalid auth token
0x30 - Invalid signup fields
0x31 - Passwords do not match
0x32 - Username or email already taken
0x33 - Invalid update fields
0x34 - User not found
0x61 - Invalid JSON data
0x62 - Unsupported Content-Type
0x80 - Database error
0xFF - Unknown error
"""

from django.http import JsonResponse


class AuthError(Exception):
    status = 500
    errno = 0xFF
    default_message = "An unexpected error occurred."

    def __init__(self, message=None, errno=None, details=None):
        self.message = message or self.default_message
        if errno is not None:
            self.errno = errno
        self.details = details
        super().__init__(self.message)


class BadRequest(AuthError):
    status = 400
    errno = 0x30
    default_message = "Invalid request data."


class Unauthorized(AuthError):
    status = 401
    errno = 0x11
    default_message = "Invalid email or password."


class NotFound(AuthError):
    status = 404
    errno = 0x34
    default_message = "User not found."


class Conflict(AuthError):
    status = 409
    errno = 0x32
    default_message = "Username or email already taken."


class InternalError(AuthError):
    status = 500
    errno = 0x80
    default_message = "Internal server error."


def error_response(exc):
    body = {
        "success": False,
        "message": exc.message,
        "errno": exc.errno,
    }
    if exc.details:
        body["errors"] = exc.details
    return JsonResponse(body, status=exc.status)
