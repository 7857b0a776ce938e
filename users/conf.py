from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Tuple

from django.apps import apps
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class AuthSettings:
    """Process-wide auth configuration, read once when the app loads."""

    secret_key: str
    algorithm: str = 'HS256'
    token_lifetime: Optional[timedelta] = timedelta(minutes=60)
    cookie_name: str = 'token'
    login_path: str = '/login'
    dashboard_path: str = '/dashboard'
    guarded_paths: Tuple[str, ...] = ('/login', '/dashboard')


def load_auth_settings():
    secret = getattr(settings, 'JWT_SECRET_KEY', None)
    if not secret:
        raise ImproperlyConfigured("JWT_SECRET_KEY must be set in the environment.")

    minutes = int(getattr(settings, 'JWT_TOKEN_LIFETIME_MINUTES', 60))
    if minutes < 0:
        raise ImproperlyConfigured("JWT_TOKEN_LIFETIME_MINUTES cannot be negative.")

    login_path = getattr(settings, 'LOGIN_PAGE_PATH', '/login')
    dashboard_path = getattr(settings, 'DASHBOARD_PATH', '/dashboard')

    return AuthSettings(
        secret_key=secret,
        algorithm=getattr(settings, 'JWT_ALGORITHM', 'HS256'),
        token_lifetime=timedelta(minutes=minutes) if minutes else None,
        cookie_name=getattr(settings, 'AUTH_COOKIE_NAME', 'token'),
        login_path=login_path,
        dashboard_path=dashboard_path,
        guarded_paths=tuple(getattr(settings, 'ROUTE_GUARD_PATHS', (login_path, dashboard_path))),
    )


def get_auth_settings():
    return apps.get_app_config('users').auth_settings
