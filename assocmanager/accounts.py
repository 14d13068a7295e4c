"""
accounts.py
Password hashing (bcrypt), generated credentials, account creation.
"""

import secrets
import string
import time

import bcrypt
from flask import current_app, has_app_context

from .errors import Conflict, Internal
from .models import ROLE_ADMIN, ROLE_MEMBER

_ALPHABET = string.ascii_lowercase + string.digits
ACCESS_TOKEN_LENGTH = 26
GENERATED_PASSWORD_LENGTH = 8
TOKEN_ATTEMPTS = 5


def _to_bcrypt_secret(password: str) -> bytes:
    """bcrypt only uses the first 72 bytes of the password."""
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: int | None = None) -> str:
    if rounds is None:
        rounds = current_app.config.get("BCRYPT_ROUNDS", 10) if has_app_context() else 10
    return bcrypt.hashpw(_to_bcrypt_secret(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_password() -> str:
    return _random_string(GENERATED_PASSWORD_LENGTH)


def generate_access_token() -> str:
    """Static member credential, distinct from the session JWT."""
    return _random_string(ACCESS_TOKEN_LENGTH)


def placeholder_email(phone: str | None = None) -> str:
    if phone:
        digits = "".join(ch for ch in phone if ch.isdigit())
        if digits:
            return f"{digits}@temp.local"
    return f"member_{int(time.time() * 1000)}_{_random_string(9)}@temp.local"


def create_member_account(client, name, custom_field_value, email=None, phone=None, password=None):
    """Create the User + Member pair in one transaction.

    Returns ``(user, member, clear_password)``. Uniqueness of email and phone
    is left to the storage constraints; a clashing access token is redrawn.
    """
    clear_password = password or generate_password()
    password_hash = hash_password(clear_password)
    email = email or placeholder_email(phone)

    for _ in range(TOKEN_ATTEMPTS):
        token = generate_access_token()

        def _create(tx):
            user = tx.users.create(
                email=email,
                phone=phone or None,
                password_hash=password_hash,
                role=ROLE_MEMBER,
                token=token,
                active=True,
            )
            member = tx.members.create(
                user_id=user.id,
                name=name,
                custom_field_value=custom_field_value,
                active=True,
            )
            return user, member

        try:
            user, member = client.transaction(_create)
        except Conflict as err:
            if err.field == "token":
                continue
            raise
        return user, member, clear_password
    raise Internal("Impossible de générer un token d'accès unique")


def create_admin_account(client, email, password, phone=None):
    return client.users.create(
        email=email,
        phone=phone or None,
        password_hash=hash_password(password),
        role=ROLE_ADMIN,
        active=True,
    )


def regenerate_access_token(client, user):
    for _ in range(TOKEN_ATTEMPTS):
        try:
            return client.users.update(user, token=generate_access_token()).token
        except Conflict as err:
            if err.field != "token":
                raise
    raise Internal("Impossible de générer un token d'accès unique")
