# platform_routes.py: SUPER_ADMIN tier, manages associations and their database files
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from .accounts import verify_password
from .auth import get_registry, make_platform_token, platform_required
from .models import Association, SuperAdmin, db
from .provisioning import drop_association_database, make_db_name, provision_association
from .repositories import translate_integrity_error
from .seed import DEFAULT_ASSOCIATION_CODE
from .utils import clean_str

bp = Blueprint("platform", __name__, url_prefix="/api/platform")


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = clean_str(data.get("email"))
    password = data.get("password") or ""
    if not email or not password:
        return jsonify({"error": "Email et mot de passe requis"}), 400

    admin = SuperAdmin.query.filter_by(email=email).first()
    if admin is None:
        return jsonify({"error": "Identifiants invalides"}), 401
    if not admin.active:
        return jsonify({"error": "Compte désactivé"}), 401
    if not verify_password(password, admin.password_hash):
        return jsonify({"error": "Identifiants invalides"}), 401

    return jsonify({"token": make_platform_token(admin), "user": admin.to_dict()}), 200


@bp.get("/me")
@platform_required
def me():
    return jsonify(g.super_admin.to_dict()), 200


@bp.get("/associations")
@platform_required
def list_associations():
    rows = Association.query.order_by(Association.created_at.desc()).all()
    return jsonify([a.to_dict() for a in rows]), 200


@bp.get("/associations/<id>")
@platform_required
def get_association(id):
    association = db.session.get(Association, id)
    if association is None:
        return jsonify({"error": "Association introuvable"}), 404
    return jsonify(association.to_dict()), 200


@bp.post("/associations")
@platform_required
def create_association():
    data = request.get_json(silent=True) or {}
    name = clean_str(data.get("name"))
    code = clean_str(data.get("code"))
    admin_email = clean_str(data.get("adminEmail"))
    admin_password = data.get("adminPassword") or ""
    if not name or not code or not admin_email or not admin_password:
        return jsonify({"error": "Nom, code, email et mot de passe administrateur requis"}), 400

    db_name = make_db_name(code)
    association = Association(
        name=name,
        type=clean_str(data.get("type")) or "association",
        code=code,
        db_name=db_name,
        active=True,
        admin_email=admin_email,
        admin_name=clean_str(data.get("adminName")),
    )
    db.session.add(association)
    try:
        # code uniqueness is checked by the constraint before any file is created
        db.session.flush()
    except IntegrityError as e:
        db.session.rollback()
        raise translate_integrity_error(e) from e

    try:
        # removes its own file when seeding fails
        provision_association(get_registry(), db_name, name, admin_email, admin_password,
                              type=association.type)
    except Exception:
        db.session.rollback()
        raise
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        drop_association_database(get_registry(), db_name)
        raise

    current_app.logger.info(f"association {code} provisioned ({db_name}) by {g.super_admin.email}")
    return jsonify(association.to_dict()), 201


@bp.put("/associations/<id>")
@platform_required
def update_association(id):
    association = db.session.get(Association, id)
    if association is None:
        return jsonify({"error": "Association introuvable"}), 404
    data = request.get_json(silent=True) or {}

    for key, attr in (("name", "name"), ("type", "type"), ("adminEmail", "admin_email"),
                      ("adminName", "admin_name")):
        value = clean_str(data.get(key))
        if value:
            setattr(association, attr, value)
    db.session.commit()
    return jsonify(association.to_dict()), 200


@bp.put("/associations/<id>/toggle")
@platform_required
def toggle_association(id):
    association = db.session.get(Association, id)
    if association is None:
        return jsonify({"error": "Association introuvable"}), 404
    association.active = not association.active
    db.session.commit()
    current_app.logger.info(f"association {association.code} active={association.active}")
    return jsonify(association.to_dict()), 200


@bp.delete("/associations/<id>")
@platform_required
def delete_association(id):
    association = db.session.get(Association, id)
    if association is None:
        return jsonify({"error": "Association introuvable"}), 404
    if association.code == DEFAULT_ASSOCIATION_CODE:
        return jsonify({"error": "Impossible de supprimer l'association par défaut"}), 400

    db_name, code = association.db_name, association.code
    db.session.delete(association)
    db.session.commit()
    drop_association_database(get_registry(), db_name)
    current_app.logger.info(f"association {code} deleted ({db_name})")
    return jsonify({"message": "Association supprimée avec succès"}), 200


@bp.get("/stats")
@platform_required
def stats():
    total = db.session.scalar(db.select(func.count()).select_from(Association)) or 0
    active = db.session.scalar(
        db.select(func.count()).select_from(Association).where(Association.active.is_(True))
    ) or 0
    return jsonify({
        "totalAssociations": total,
        "activeAssociations": active,
        "inactiveAssociations": total - active,
        "superAdmins": db.session.scalar(db.select(func.count()).select_from(SuperAdmin)) or 0,
    }), 200
