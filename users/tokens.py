import logging
from datetime import datetime, timezone

from rest_framework_simplejwt.backends import TokenBackend
from rest_framework_simplejwt.exceptions import TokenBackendError

from .exceptions import Unauthorized

logger = logging.getLogger(__name__)

USER_ID_CLAIM = 'userId'


class TokenIssuer:
    """Signs and verifies stateless session tokens bound to a user id.

    Built from explicit settings so callers (and tests) can hold issuers with
    different secrets side by side.
    """

    def __init__(self, secret_key, algorithm='HS256', lifetime=None):
        if not secret_key:
            raise ValueError("A signing secret is required")
        self.lifetime = lifetime
        self.backend = TokenBackend(algorithm, signing_key=secret_key)

    @classmethod
    def from_settings(cls, auth_settings):
        return cls(
            auth_settings.secret_key,
            algorithm=auth_settings.algorithm,
            lifetime=auth_settings.token_lifetime,
        )

    def issue(self, user_id):
        now = datetime.now(timezone.utc)
        payload = {USER_ID_CLAIM: user_id, 'iat': int(now.timestamp())}
        if self.lifetime is not None:
            payload['exp'] = int((now + self.lifetime).timestamp())
        return self.backend.encode(payload)

    def verify(self, token):
        """Return the user id bound to ``token`` or raise ``Unauthorized``."""
        if not token:
            raise Unauthorized("Invalid or missing token.", errno=0x20)
        try:
            payload = self.backend.decode(token, verify=True)
        except TokenBackendError as e:
            logger.debug("Token rejected: %s", e)
            raise Unauthorized("Invalid or missing token.", errno=0x20) from e

        # A bounded issuer never accepts tokens that cannot expire
        if self.lifetime is not None and 'exp' not in payload:
            raise Unauthorized("Invalid or missing token.", errno=0x20)

        user_id = payload.get(USER_ID_CLAIM)
        if user_id is None:
            raise Unauthorized("Invalid or missing token.", errno=0x20)
        return user_id
