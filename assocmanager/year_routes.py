# year_routes.py: dues periods; at most one year is active at a time
from flask import Blueprint, current_app, g, jsonify, request

from .auth import admin_required, load_tenant_user
from .utils import parse_bool, parse_int, parse_number

bp = Blueprint("years", __name__, url_prefix="/api/years")
bp.before_request(load_tenant_user)


@bp.get("")
@bp.get("/")
def list_years():
    return jsonify([y.to_dict() for y in g.tenant.years.list_all()]), 200


@bp.get("/active")
def active_year():
    year = g.tenant.years.get_active()
    if year is None:
        return jsonify({"error": "Aucune année active"}), 404
    return jsonify(year.to_dict()), 200


@bp.post("")
@bp.post("/")
@admin_required
def create_year():
    data = request.get_json(silent=True) or {}
    value = parse_int(data.get("year"))
    amount = parse_number(data.get("monthlyAmount"))
    if value is None or amount is None:
        return jsonify({"error": "Année et montant mensuel requis"}), 400
    if value <= 0 or amount <= 0:
        return jsonify({"error": "Année ou montant invalide"}), 400
    active = bool(parse_bool(data.get("active")))

    def _create(tx):
        if active:
            tx.years.deactivate_all()
        return tx.years.create(year=value, monthly_amount=amount, active=active)

    year = g.tenant.transaction(_create)
    current_app.logger.info(f"year {value} created in {g.tenant_name} (active={active})")
    return jsonify(year.to_dict()), 201


@bp.put("/<id>")
@admin_required
def update_year(id):
    year = g.tenant.years.get(id)
    if year is None:
        return jsonify({"error": "Année introuvable"}), 404
    data = request.get_json(silent=True) or {}
    amount = parse_number(data.get("monthlyAmount"))
    if amount is None or amount <= 0:
        return jsonify({"error": "Montant mensuel requis"}), 400
    g.tenant.years.update(year, monthly_amount=amount)
    return jsonify(year.to_dict()), 200


@bp.put("/<id>/activate")
@admin_required
def activate_year(id):
    year = g.tenant.years.get(id)
    if year is None:
        return jsonify({"error": "Année introuvable"}), 404
    g.tenant.transaction(lambda tx: tx.years.activate(year))
    return jsonify(year.to_dict()), 200


@bp.delete("/<id>")
@admin_required
def delete_year(id):
    year = g.tenant.years.get(id)
    if year is None:
        return jsonify({"error": "Année introuvable"}), 404
    if g.tenant.payments.count_for_year(year.id) > 0:
        return jsonify({"error": "Impossible de supprimer une année avec des paiements enregistrés"}), 400
    g.tenant.years.delete(year)
    return jsonify({"message": "Année supprimée avec succès"}), 200
