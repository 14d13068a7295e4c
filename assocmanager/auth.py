# auth.py: JWT tokens (PyJWT) + request authentication for tenant and platform
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt  # PyJWT
from flask import current_app, g, request

from .errors import Forbidden, Unauthorized
from .models import ROLE_ADMIN, ROLE_SUPER_ADMIN, SuperAdmin, db

TENANT_AUDIENCE = "tenant"
PLATFORM_AUDIENCE = "platform"
ALGORITHM = "HS256"


@dataclass(frozen=True)
class TenantContext:
    user: object
    client: object
    db_name: str
    association_id: str | None = None


def get_registry():
    return current_app.extensions["tenant_registry"]


# ---------- tokens ----------
def make_token(user_id: str, association=None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "aud": TENANT_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(days=current_app.config["TOKEN_TTL_DAYS"]),
    }
    if association is not None:
        payload["associationId"] = association.id
        payload["dbName"] = association.db_name
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=ALGORITHM)


def make_platform_token(super_admin) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "id": super_admin.id,
        "email": super_admin.email,
        "role": ROLE_SUPER_ADMIN,
        "aud": PLATFORM_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(hours=current_app.config["PLATFORM_TOKEN_TTL_HOURS"]),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=ALGORITHM)


def read_bearer(auth_header: str):
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def decode_token(token: str, audience: str) -> dict:
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=[ALGORITHM], audience=audience)
    except jwt.PyJWTError as e:
        current_app.logger.info(f"token rejected ({audience}): {e}")
        raise Forbidden("Token invalide") from e


# ---------- tenant ----------
def authenticate(auth_header: str, registry) -> TenantContext:
    token = read_bearer(auth_header)
    if not token:
        raise Unauthorized("Token manquant")
    claims = decode_token(token, TENANT_AUDIENCE)
    user_id = claims.get("userId")
    if not user_id or claims.get("role") == ROLE_SUPER_ADMIN:
        raise Forbidden("Token invalide")

    # NotFound from the registry reaches the client as a 404
    database = registry.resolve(claims.get("dbName"))
    client = database.client()
    user = client.users.get_with_member(user_id)
    if user is None or not user.active:
        client.close()
        raise Unauthorized("Utilisateur inactif ou introuvable")
    return TenantContext(user=user, client=client, db_name=database.name,
                         association_id=claims.get("associationId"))


def load_tenant_user():
    """``before_request`` hook for every tenant blueprint."""
    if request.method == "OPTIONS":
        return None
    ctx = authenticate(request.headers.get("Authorization", ""), get_registry())
    g.tenant = ctx.client
    g.user = ctx.user
    g.tenant_name = ctx.db_name
    g.association_id = ctx.association_id
    return None


def require_admin(user):
    if user is None or user.role != ROLE_ADMIN:
        raise Forbidden("Accès réservé aux administrateurs")


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        require_admin(g.get("user"))
        return view(*args, **kwargs)
    return wrapped


def close_tenant(_exc=None):
    client = g.pop("tenant", None)
    if client is not None:
        client.close()


# ---------- platform ----------
def authenticate_platform(auth_header: str):
    token = read_bearer(auth_header)
    if not token:
        raise Unauthorized("Token requis")
    claims = decode_token(token, PLATFORM_AUDIENCE)
    if claims.get("role") != ROLE_SUPER_ADMIN:
        raise Forbidden("Accès SUPER_ADMIN requis")
    admin = db.session.get(SuperAdmin, claims.get("id")) if claims.get("id") else None
    if admin is None or not admin.active:
        raise Forbidden("Compte SUPER_ADMIN invalide ou désactivé")
    return admin


def platform_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        g.super_admin = authenticate_platform(request.headers.get("Authorization", ""))
        return view(*args, **kwargs)
    return wrapped
