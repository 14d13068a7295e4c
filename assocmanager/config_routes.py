# config_routes.py: the association's own settings (single row per tenant)
from flask import Blueprint, g, jsonify, request

from .auth import admin_required, load_tenant_user
from .utils import clean_str

bp = Blueprint("config", __name__, url_prefix="/api/config")
bp.before_request(load_tenant_user)


@bp.get("")
@bp.get("/")
def get_config():
    return jsonify(g.tenant.config.get_or_create().to_dict()), 200


@bp.post("")
@bp.post("/")
@admin_required
def save_config():
    data = request.get_json(silent=True) or {}
    name = clean_str(data.get("name"))
    label = clean_str(data.get("memberFieldLabel"))
    if not name or not label:
        return jsonify({"error": "Nom et libellé du champ requis"}), 400

    config = g.tenant.config.save(
        name=name,
        type=clean_str(data.get("type")) or "Association",
        member_field_label=label,
    )
    return jsonify(config.to_dict()), 200
