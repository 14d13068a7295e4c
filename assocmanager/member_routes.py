# member_routes.py: members = User(role MEMBER) + Member profile
from flask import Blueprint, current_app, g, jsonify, request

from .accounts import create_member_account, hash_password, regenerate_access_token
from .auth import admin_required, load_tenant_user
from .models import ROLE_ADMIN, ROLE_MEMBER, iso
from .utils import clean_str, parse_bool

bp = Blueprint("members", __name__, url_prefix="/api/members")
bp.before_request(load_tenant_user)


def member_payload(user, show_token):
    m = user.member
    out = {
        "id": user.id,
        "email": user.email,
        "phone": user.phone,
        "active": user.active,
        "name": m.name if m else None,
        "customFieldValue": m.custom_field_value if m else None,
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }
    if show_token:
        out["token"] = user.token
    return out


def _is_admin():
    return g.user.role == ROLE_ADMIN


def _get_member_user(id):
    return g.tenant.users.get_with_role(id, ROLE_MEMBER)


@bp.get("")
@bp.get("/")
def list_members():
    search = clean_str(request.args.get("search"))
    active = parse_bool(request.args.get("active"))
    users = g.tenant.users.list_members(search=search, active=active)
    return jsonify([member_payload(u, _is_admin()) for u in users]), 200


@bp.post("")
@bp.post("/")
@admin_required
def create_member():
    data = request.get_json(silent=True) or {}
    name = clean_str(data.get("name"))
    custom = clean_str(data.get("customFieldValue"))
    email = clean_str(data.get("email"))
    phone = clean_str(data.get("phone"))
    if not name or not custom:
        return jsonify({"error": "Nom et champ personnalisé requis"}), 400
    if not email and not phone:
        return jsonify({"error": "Email ou téléphone requis"}), 400

    user, member, password = create_member_account(
        g.tenant, name, custom, email=email, phone=phone, password=data.get("password") or None,
    )
    current_app.logger.info(f"member created {user.id} in {g.tenant_name}")
    return jsonify({
        "id": user.id,
        "email": user.email,
        "phone": user.phone,
        "token": user.token,
        "password": password,
        "name": member.name,
        "customFieldValue": member.custom_field_value,
        "active": user.active,
    }), 201


@bp.get("/<id>")
def get_member(id):
    user = _get_member_user(id)
    if user is None:
        return jsonify({"error": "Membre introuvable"}), 404
    return jsonify(member_payload(user, _is_admin())), 200


@bp.put("/<id>")
@admin_required
def update_member(id):
    user = _get_member_user(id)
    if user is None or user.member is None:
        return jsonify({"error": "Membre introuvable"}), 404
    data = request.get_json(silent=True) or {}
    member = user.member

    def _update(tx):
        tx.users.update(
            user,
            email=clean_str(data.get("email")) or user.email,
            phone=clean_str(data.get("phone")) if "phone" in data else user.phone,
        )
        tx.members.update(
            member,
            name=clean_str(data.get("name")) or member.name,
            custom_field_value=clean_str(data.get("customFieldValue")) or member.custom_field_value,
        )

    g.tenant.transaction(_update)
    return jsonify(member_payload(user, True)), 200


def _set_active(id, active):
    user = _get_member_user(id)
    if user is None:
        return None

    # User.active and Member.active move together
    def _toggle(tx):
        tx.users.update(user, active=active)
        if user.member is not None:
            tx.members.update(user.member, active=active)

    g.tenant.transaction(_toggle)
    return user


@bp.put("/<id>/deactivate")
@admin_required
def deactivate_member(id):
    if _set_active(id, False) is None:
        return jsonify({"error": "Membre introuvable"}), 404
    return jsonify({"message": "Membre désactivé avec succès"}), 200


@bp.put("/<id>/activate")
@admin_required
def activate_member(id):
    if _set_active(id, True) is None:
        return jsonify({"error": "Membre introuvable"}), 404
    return jsonify({"message": "Membre réactivé avec succès"}), 200


@bp.post("/<id>/reset-password")
@admin_required
def reset_member_password(id):
    data = request.get_json(silent=True) or {}
    new_password = data.get("newPassword") or ""
    if len(new_password) < 4:
        return jsonify({"error": "Mot de passe trop court (minimum 4 caractères)"}), 400
    user = _get_member_user(id)
    if user is None:
        return jsonify({"error": "Membre introuvable"}), 404
    g.tenant.users.update(user, password_hash=hash_password(new_password))
    return jsonify({"message": "Mot de passe réinitialisé", "newPassword": new_password}), 200


@bp.post("/<id>/regenerate-token")
@admin_required
def regenerate_member_token(id):
    user = _get_member_user(id)
    if user is None:
        return jsonify({"error": "Membre introuvable"}), 404
    token = regenerate_access_token(g.tenant, user)
    return jsonify({"message": "Token régénéré", "token": token}), 200


@bp.delete("/<id>")
@admin_required
def delete_member(id):
    user = _get_member_user(id)
    if user is None:
        return jsonify({"error": "Membre introuvable"}), 404
    member = user.member

    def _delete(tx):
        if member is not None:
            tx.payments.delete_for_member(member.id)
            tx.exceptional_payments.delete_for_member(member.id)
        # the Member row goes with its User (cascade)
        tx.users.delete(user)

    g.tenant.transaction(_delete)
    current_app.logger.info(f"member deleted {id} in {g.tenant_name}")
    return jsonify({"message": "Membre supprimé avec succès"}), 200
