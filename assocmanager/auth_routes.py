# auth_routes.py: login (password or member access token) + current user
from flask import Blueprint, g, jsonify, request

from .accounts import verify_password
from .auth import get_registry, load_tenant_user, make_token
from .models import Association, db

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
        "member": user.member.to_dict() if user.member else None,
    }


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    code = (data.get("associationCode") or "").strip()

    association = None
    if code:
        association = Association.query.filter_by(code=code).first()
        if association is None:
            return jsonify({"error": "Association introuvable"}), 404
        if not association.active:
            return jsonify({"error": "Association désactivée"}), 403

    database = get_registry().resolve(association.db_name if association else None)
    g.tenant = client = database.client()

    access_token = (data.get("accessToken") or "").strip()
    if access_token:
        user = client.users.find_active_by_access_token(access_token)
        if user is None:
            return jsonify({"error": "Token d'accès invalide"}), 401
    else:
        identifier = (data.get("identifier") or data.get("phone") or data.get("email") or "").strip()
        password = data.get("password") or ""
        if not identifier or not password:
            return jsonify({"error": "Identifiant et mot de passe requis"}), 400
        user = client.users.find_active_by_identifier(identifier)
        if user is None or not verify_password(password, user.password_hash):
            return jsonify({"error": "Identifiants invalides"}), 401

    return jsonify({
        "token": make_token(user.id, association),
        "user": user_payload(user),
        "association": association.public_dict() if association else None,
    }), 200


@bp.get("/me")
def me():
    load_tenant_user()
    association = db.session.get(Association, g.association_id) if g.association_id else None
    return jsonify({
        **user_payload(g.user),
        "association": association.public_dict() if association else None,
    }), 200
