# exceptional_routes.py: one-off collections (décès, mariage, ...) and their payments
from flask import Blueprint, current_app, g, jsonify, request

from .auth import admin_required, load_tenant_user
from .models import CONTRIBUTION_TYPES
from .utils import clean_str, parse_bool, parse_date, parse_number

bp = Blueprint("exceptional", __name__, url_prefix="/api/exceptional")
bp.before_request(load_tenant_user)

_TYPE_ERROR = f"Type invalide. Types autorisés: {', '.join(CONTRIBUTION_TYPES)}"


def payment_payload(payment):
    out = payment.to_dict()
    member = payment.member
    if member is not None:
        out["member"] = {
            **member.to_dict(),
            "user": member.user.to_dict(include_token=False) if member.user else None,
        }
    return out


def contribution_payload(contribution):
    payments = contribution.payments
    return {
        **contribution.to_dict(),
        "payments": [payment_payload(p) for p in payments],
        "totalCollected": sum(p.amount for p in payments),
        "participantsCount": len({p.member_id for p in payments}),
    }


@bp.get("")
@bp.get("/")
def list_contributions():
    active = parse_bool(request.args.get("active"))
    return jsonify([contribution_payload(c) for c in g.tenant.contributions.list(active=active)]), 200


@bp.get("/<id>")
def get_contribution(id):
    contribution = g.tenant.contributions.get(id)
    if contribution is None:
        return jsonify({"error": "Cotisation introuvable"}), 404
    return jsonify(contribution_payload(contribution)), 200


@bp.post("")
@bp.post("/")
@admin_required
def create_contribution():
    data = request.get_json(silent=True) or {}
    title = clean_str(data.get("title"))
    type = clean_str(data.get("type"))
    if not title or not type:
        return jsonify({"error": "Titre et type requis"}), 400
    if type not in CONTRIBUTION_TYPES:
        return jsonify({"error": _TYPE_ERROR}), 400

    contribution = g.tenant.contributions.create(
        title=title,
        type=type,
        description=clean_str(data.get("description")),
        active=True,
    )
    current_app.logger.info(f"exceptional contribution {contribution.id} created in {g.tenant_name}")
    return jsonify(contribution_payload(contribution)), 201


@bp.put("/<id>")
@admin_required
def update_contribution(id):
    contribution = g.tenant.contributions.get(id)
    if contribution is None:
        return jsonify({"error": "Cotisation introuvable"}), 404
    data = request.get_json(silent=True) or {}

    changes = {}
    if clean_str(data.get("title")):
        changes["title"] = clean_str(data.get("title"))
    if data.get("type") is not None:
        if data.get("type") not in CONTRIBUTION_TYPES:
            return jsonify({"error": _TYPE_ERROR}), 400
        changes["type"] = data["type"]
    if "description" in data:
        changes["description"] = clean_str(data.get("description"))
    active = parse_bool(data.get("active"))
    if active is not None:
        changes["active"] = active

    g.tenant.contributions.update(contribution, **changes)
    return jsonify(contribution_payload(contribution)), 200


@bp.delete("/<id>")
@admin_required
def delete_contribution(id):
    contribution = g.tenant.contributions.get(id)
    if contribution is None:
        return jsonify({"error": "Cotisation introuvable"}), 404
    # payments are removed with their contribution
    g.tenant.contributions.delete(contribution)
    return jsonify({"message": "Cotisation supprimée avec succès"}), 200


@bp.post("/<id>/payments")
@admin_required
def add_payment(id):
    data = request.get_json(silent=True) or {}
    member_ref = clean_str(data.get("memberId"))
    amount = data.get("amount")
    if not member_ref or amount is None:
        return jsonify({"error": "Membre et montant requis"}), 400
    amount = parse_number(amount)
    if amount is None or amount <= 0:
        return jsonify({"error": "Montant invalide"}), 400

    contribution = g.tenant.contributions.get(id)
    if contribution is None:
        return jsonify({"error": "Cotisation introuvable"}), 404
    # the client may send either the Member id or its User id
    member = g.tenant.members.find_by_id_or_user_id(member_ref)
    if member is None:
        return jsonify({"error": "Membre introuvable"}), 404

    values = {
        "contribution_id": contribution.id,
        "member_id": member.id,
        "amount": amount,
        "notes": clean_str(data.get("notes")),
    }
    payment_date = parse_date(data.get("paymentDate"))
    if payment_date is not None:
        values["payment_date"] = payment_date
    payment = g.tenant.exceptional_payments.create(**values)
    return jsonify(payment_payload(payment)), 201


@bp.put("/payments/<payment_id>")
@admin_required
def update_payment(payment_id):
    payment = g.tenant.exceptional_payments.get(payment_id)
    if payment is None:
        return jsonify({"error": "Paiement introuvable"}), 404
    data = request.get_json(silent=True) or {}

    changes = {}
    if data.get("amount") is not None:
        amount = parse_number(data.get("amount"))
        if amount is None or amount <= 0:
            return jsonify({"error": "Montant invalide"}), 400
        changes["amount"] = amount
    if data.get("paymentDate"):
        payment_date = parse_date(data.get("paymentDate"))
        if payment_date is None:
            return jsonify({"error": "Date invalide"}), 400
        changes["payment_date"] = payment_date
    if "notes" in data:
        changes["notes"] = clean_str(data.get("notes"))

    g.tenant.exceptional_payments.update(payment, **changes)
    return jsonify(payment_payload(payment)), 200


@bp.delete("/payments/<payment_id>")
@admin_required
def delete_payment(payment_id):
    payment = g.tenant.exceptional_payments.get(payment_id)
    if payment is None:
        return jsonify({"error": "Paiement introuvable"}), 404
    g.tenant.exceptional_payments.delete(payment)
    return jsonify({"message": "Paiement supprimé avec succès"}), 200
