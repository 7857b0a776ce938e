from django.apps import AppConfig


class UsersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'users'

    def ready(self):
        # Fail at startup, not on the first request
        from .conf import load_auth_settings
        self.auth_settings = load_auth_settings()
