from .settings import *  # noqa: F401,F403

JWT_SECRET_KEY = "test-secret-key-for-the-jobportal-suite-0123456789"
JWT_TOKEN_LIFETIME_MINUTES = 60

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

LOGGING["loggers"]["users"]["level"] = "CRITICAL"  # noqa: F405
