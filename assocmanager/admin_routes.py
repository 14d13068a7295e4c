# admin_routes.py: ADMIN accounts of the current association
from flask import Blueprint, current_app, g, jsonify, request

from .accounts import create_admin_account, hash_password
from .auth import admin_required, load_tenant_user
from .models import ROLE_ADMIN
from .utils import clean_str

bp = Blueprint("admins", __name__, url_prefix="/api/admin")
bp.before_request(load_tenant_user)


def _get_admin(id):
    return g.tenant.users.get_with_role(id, ROLE_ADMIN)


@bp.get("/list")
@admin_required
def list_admins():
    return jsonify([u.to_dict(include_token=False) for u in g.tenant.users.list_admins()]), 200


@bp.post("/create")
@admin_required
def create_admin():
    data = request.get_json(silent=True) or {}
    email = clean_str(data.get("email"))
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"error": "Email et mot de passe requis"}), 400
    if len(password) < 4:
        return jsonify({"error": "Mot de passe trop court (minimum 4 caractères)"}), 400

    user = create_admin_account(g.tenant, email, password, phone=clean_str(data.get("phone")))
    current_app.logger.info(f"admin created {user.id} in {g.tenant_name}")
    return jsonify(user.to_dict(include_token=False)), 201


@bp.put("/<id>/deactivate")
@admin_required
def deactivate_admin(id):
    if id == g.user.id:
        return jsonify({"error": "Vous ne pouvez pas vous désactiver vous-même"}), 400
    user = _get_admin(id)
    if user is None:
        return jsonify({"error": "Administrateur introuvable"}), 404
    g.tenant.users.update(user, active=False)
    return jsonify({"message": "Administrateur désactivé"}), 200


@bp.put("/<id>/activate")
@admin_required
def activate_admin(id):
    user = _get_admin(id)
    if user is None:
        return jsonify({"error": "Administrateur introuvable"}), 404
    g.tenant.users.update(user, active=True)
    return jsonify({"message": "Administrateur réactivé"}), 200


@bp.post("/<id>/reset-password")
@admin_required
def reset_admin_password(id):
    data = request.get_json(silent=True) or {}
    new_password = data.get("newPassword") or ""
    if len(new_password) < 4:
        return jsonify({"error": "Mot de passe trop court (minimum 4 caractères)"}), 400
    user = _get_admin(id)
    if user is None:
        return jsonify({"error": "Administrateur introuvable"}), 404
    g.tenant.users.update(user, password_hash=hash_password(new_password))
    return jsonify({"message": "Mot de passe réinitialisé"}), 200
