import logging

from django.db import DatabaseError, IntegrityError, transaction

from .exceptions import Conflict, InternalError, NotFound, Unauthorized
from .models import User

logger = logging.getLogger(__name__)


def login(email, password, issuer):
    """Verify credentials and return a signed token for the user."""
    try:
        user = User.objects.filter(email=email).first()
    except DatabaseError as e:
        logger.exception("Credential lookup failed")
        raise InternalError() from e

    # Same message for both cases so callers can't probe for emails
    if user is None:
        logger.info("Login failed: unknown email")
        raise Unauthorized()
    if not user.check_password(password):
        logger.info("Login failed: bad password for user %s", user.id)
        raise Unauthorized()

    logger.info("User %s logged in", user.id)
    return issuer.issue(user.id)


def _check_unique(field, value, exclude_id=None):
    qs = User.objects.filter(**{field: value})
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    try:
        taken = qs.exists()
    except DatabaseError as e:
        logger.exception("Uniqueness lookup failed for %s", field)
        raise InternalError() from e
    if taken:
        if field == 'username':
            raise Conflict("Username is already taken.")
        raise Conflict("Email is already in use.")


def signup(name, username, email, password, issuer):
    """Create a user and return a token for it."""
    _check_unique('username', username)
    _check_unique('email', email)

    user = User(name=name, username=username, email=email)
    user.set_password(password)
    try:
        with transaction.atomic():
            user.save()
    except IntegrityError as e:
        # Lost a race with a concurrent signup
        raise Conflict() from e
    except DatabaseError as e:
        logger.exception("User insert failed")
        raise InternalError("User creation failed.") from e

    logger.info("User %s signed up", user.id)
    return issuer.issue(user.id)


def update_user(user_id, patch):
    """Apply ``patch`` to the record owned by ``user_id``.

    ``user_id`` must come from a verified token. Only name, username and
    email are writable; the password is never touched here.
    """
    fields = {k: v for k, v in patch.items() if k in User.UPDATABLE_FIELDS}

    if 'username' in fields:
        _check_unique('username', fields['username'], exclude_id=user_id)
    if 'email' in fields:
        _check_unique('email', fields['email'], exclude_id=user_id)

    try:
        with transaction.atomic():
            user = User.objects.select_for_update().filter(id=user_id).first()
            if user is None:
                raise NotFound()
            for field, value in fields.items():
                setattr(user, field, value)
            user.save(update_fields=list(fields) + ['updated_at'])
    except IntegrityError as e:
        # The unique indexes are the final word on collisions
        raise Conflict() from e
    except DatabaseError as e:
        logger.exception("User update failed for %s", user_id)
        raise InternalError("User update failed.") from e

    logger.info("User %s updated fields %s", user_id, sorted(fields))
    return user


def get_user(user_id):
    user = User.objects.filter(id=user_id).first()
    if user is None:
        raise NotFound()
    return user
