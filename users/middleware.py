from django.shortcuts import redirect

from .conf import get_auth_settings


def _normalize(path):
    return path.rstrip('/') or '/'


def decide_redirect(path, session_cookie_present, login_path='/login', dashboard_path='/dashboard'):
    """Return the path to redirect to, or None to let the request through.

    Only checks that a session cookie exists; the token itself is not
    verified, so a stale cookie still bounces the user off the login page.
    """
    if session_cookie_present and _normalize(path) == _normalize(login_path):
        return dashboard_path
    return None


class LoginRedirectMiddleware:
    """Sends users who already hold a session cookie from /login to /dashboard."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        auth_settings = get_auth_settings()
        guarded = {_normalize(p) for p in auth_settings.guarded_paths}

        if _normalize(request.path) in guarded:
            target = decide_redirect(
                request.path,
                auth_settings.cookie_name in request.COOKIES,
                login_path=auth_settings.login_path,
                dashboard_path=auth_settings.dashboard_path,
            )
            if target:
                return redirect(target)

        return self.get_response(request)
