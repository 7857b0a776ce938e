import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

from . import services
from .conf import get_auth_settings
from .decorators import authenticate_token, expect_json
from .exceptions import AuthError, BadRequest, error_response
from .serializers import LoginSerializer, SignupSerializer, UserUpdateSerializer
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


def _unexpected(e):
    logger.exception("Unhandled error in auth view: %s", e)
    return JsonResponse({
        "success": False,
        "message": "Internal server error.",
        "errno": 0xFF
    }, status=500)


def _validated(serializer_class, data, message, errno):
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise BadRequest(message, errno=errno, details=serializer.errors)
    return serializer.validated_data


@csrf_exempt
@require_POST
@expect_json
def login(request):
    try:
        data = _validated(LoginSerializer, request.parsed_data,
                          "Email and password are required.", 0x10)
        issuer = TokenIssuer.from_settings(get_auth_settings())
        token = services.login(data['email'], data['password'], issuer)

        return JsonResponse({
            "success": True,
            "message": "Logged in successfully.",
            "token": token
        }, status=200)

    except AuthError as e:
        return error_response(e)
    except Exception as e:
        return _unexpected(e)


@csrf_exempt
@require_POST
@expect_json
def signup(request):
    try:
        serializer = SignupSerializer(data=request.parsed_data)
        if not serializer.is_valid():
            if 'confirm_password' in serializer.errors:
                raise BadRequest("Passwords do not match.", errno=0x31, details=serializer.errors)
            raise BadRequest("Name, username, email and password are required.",
                             errno=0x30, details=serializer.errors)
        data = serializer.validated_data
        issuer = TokenIssuer.from_settings(get_auth_settings())
        token = services.signup(
            data['name'], data['username'], data['email'], data['password'], issuer
        )

        return JsonResponse({
            "success": True,
            "message": "Account created successfully.",
            "token": token
        }, status=201)

    except AuthError as e:
        return error_response(e)
    except Exception as e:
        return _unexpected(e)


@csrf_exempt
@require_http_methods(["GET", "PUT"])
@authenticate_token
def user(request):
    if request.method == "GET":
        return me(request)
    return update_user(request)


def me(request):
    try:
        account = services.get_user(request.user_id)
        return JsonResponse({
            "success": True,
            "user": account.to_dict()
        }, status=200)

    except AuthError as e:
        return error_response(e)
    except Exception as e:
        return _unexpected(e)


@expect_json
def update_user(request):
    # The record to change comes from the token, never from the body
    try:
        patch = _validated(UserUpdateSerializer, request.parsed_data,
                           "Invalid user data.", 0x33)
        services.update_user(request.user_id, patch)

        return JsonResponse({
            "success": True,
            "message": "User updated successfully."
        }, status=201)

    except AuthError as e:
        return error_response(e)
    except Exception as e:
        return _unexpected(e)
