from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional
import json

from django.http import JsonResponse

from .conf import get_auth_settings
from .exceptions import BadRequest, Unauthorized, error_response
from .tokens import TokenIssuer


@dataclass(frozen=True)
class AuthResult:
    authenticated: bool
    identity: Optional[Any] = None
    response: Optional[JsonResponse] = None


def get_request_token(request, cookie_name):
    auth_header = request.headers.get('Authorization')
    if auth_header:
        scheme, _, token = auth_header.partition(' ')
        if scheme.lower() == 'bearer' and token.strip():
            return token.strip()
        return None
    return request.COOKIES.get(cookie_name) or None


def authenticate(request, auth_settings=None):
    """Verify the caller's bearer token.

    The header wins over the cookie. On failure the result carries a ready
    401 response the view can return as is.
    """
    auth_settings = auth_settings or get_auth_settings()
    issuer = TokenIssuer.from_settings(auth_settings)
    token = get_request_token(request, auth_settings.cookie_name)
    try:
        user_id = issuer.verify(token)
    except Unauthorized as e:
        return AuthResult(authenticated=False, response=error_response(e))
    return AuthResult(authenticated=True, identity=user_id)


def authenticate_token(view_func):
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        result = authenticate(request)
        if not result.authenticated:
            request.user_id = None
            return result.response

        request.user_id = result.identity
        return view_func(request, *args, **kwargs)

    return _wrapped_view


def expect_json(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if request.content_type != 'application/json':
            return JsonResponse({
                "success": False,
                "message": "Content-Type must be application/json",
                "errno": 0x62
            }, status=415)

        request.parsed_data = {}
        if request.body:
            try:
                request.parsed_data = json.loads(request.body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                return error_response(BadRequest("Invalid JSON data", errno=0x61))

        if not isinstance(request.parsed_data, dict):
            return error_response(BadRequest("JSON body must be an object", errno=0x61))

        return view_func(request, *args, **kwargs)
    return wrapper
