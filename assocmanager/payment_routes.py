# payment_routes.py: monthly dues payments and per-year statistics
from flask import Blueprint, current_app, g, jsonify, request

from .auth import admin_required, load_tenant_user
from .dues import member_row, month_grid, summarize, year_stats
from .utils import clean_str, parse_date, parse_int, parse_number

bp = Blueprint("payments", __name__, url_prefix="/api/payments")
bp.before_request(load_tenant_user)


def _year_or_404(year_id):
    return g.tenant.years.get(year_id)


@bp.get("/year/<year_id>")
def payments_for_year(year_id):
    year = _year_or_404(year_id)
    if year is None:
        return jsonify({"error": "Année introuvable"}), 404
    rows = g.tenant.members.list_active_with_payments_for_year(year.id)
    return jsonify({
        "year": year.to_dict(),
        "members": [member_row(m, payments, year) for m, payments in rows],
    }), 200


@bp.get("/member/<member_id>/year/<year_id>")
def payments_for_member(member_id, year_id):
    year = _year_or_404(year_id)
    if year is None:
        return jsonify({"error": "Année introuvable"}), 404
    member = g.tenant.members.find_by_id_or_user_id(member_id)
    if member is None:
        return jsonify({"error": "Membre introuvable"}), 404
    payments = g.tenant.payments.list_for_member_year(member.id, year.id)
    return jsonify({
        "member": member.to_dict(),
        "year": year.to_dict(),
        "paymentsByMonth": month_grid(payments, year.monthly_amount, detailed=True),
        "summary": summarize(payments, year.monthly_amount),
    }), 200


@bp.get("/stats/year/<year_id>")
def stats_for_year(year_id):
    year = _year_or_404(year_id)
    if year is None:
        return jsonify({"error": "Année introuvable"}), 404
    rows = g.tenant.members.list_active_with_payments_for_year(year.id)
    return jsonify(year_stats(year, g.tenant.payments.list_for_year(year.id), rows)), 200


def _payment_fields(data):
    """Validated (member_id, year_id, month, amount) or an error response."""
    member_id = clean_str(data.get("memberId"))
    year_id = clean_str(data.get("yearId"))
    month = data.get("month")
    amount = data.get("amountPaid")
    if not member_id or not year_id or month is None or amount is None:
        return None, (jsonify({"error": "Membre, année, mois et montant requis"}), 400)
    month = parse_int(month)
    if month is None or not 1 <= month <= 12:
        return None, (jsonify({"error": "Mois invalide (1-12)"}), 400)
    amount = parse_number(amount)
    if amount is None or amount <= 0:
        return None, (jsonify({"error": "Montant invalide"}), 400)

    member = g.tenant.members.find_by_id_or_user_id(member_id)
    if member is None:
        return None, (jsonify({"error": "Membre introuvable"}), 404)
    year = g.tenant.years.get(year_id)
    if year is None:
        return None, (jsonify({"error": "Année introuvable"}), 404)
    return (member, year, month, amount), None


@bp.post("")
@bp.post("/")
@admin_required
def create_payment():
    data = request.get_json(silent=True) or {}
    fields, error = _payment_fields(data)
    if error:
        return error
    member, year, month, amount = fields

    values = {
        "member_id": member.id,
        "year_id": year.id,
        "month": month,
        "amount_paid": amount,
        "notes": clean_str(data.get("notes")),
    }
    payment_date = parse_date(data.get("paymentDate"))
    if payment_date is not None:
        values["payment_date"] = payment_date
    payment = g.tenant.payments.create(**values)
    current_app.logger.info(f"payment {payment.id} recorded for member {member.id} month {month}/{year.year}")
    return jsonify(payment.to_dict()), 201


@bp.put("/month")
@admin_required
def upsert_month():
    data = request.get_json(silent=True) or {}
    fields, error = _payment_fields(data)
    if error:
        return error
    member, year, month, amount = fields

    values = {"amount_paid": amount, "notes": clean_str(data.get("notes"))}
    payment_date = parse_date(data.get("paymentDate"))
    if payment_date is not None:
        values["payment_date"] = payment_date
    payment = g.tenant.payments.upsert(member.id, year.id, month, create=values, update=values)
    return jsonify(payment.to_dict()), 200


@bp.put("/<id>")
@admin_required
def update_payment(id):
    payment = g.tenant.payments.get(id)
    if payment is None:
        return jsonify({"error": "Paiement introuvable"}), 404
    data = request.get_json(silent=True) or {}

    changes = {}
    if data.get("amountPaid") is not None:
        amount = parse_number(data.get("amountPaid"))
        if amount is None or amount <= 0:
            return jsonify({"error": "Montant invalide"}), 400
        changes["amount_paid"] = amount
    if data.get("paymentDate"):
        payment_date = parse_date(data.get("paymentDate"))
        if payment_date is None:
            return jsonify({"error": "Date invalide"}), 400
        changes["payment_date"] = payment_date
    if "notes" in data:
        changes["notes"] = clean_str(data.get("notes"))

    g.tenant.payments.update(payment, **changes)
    return jsonify(payment.to_dict()), 200


@bp.delete("/<id>")
@admin_required
def delete_payment(id):
    payment = g.tenant.payments.get(id)
    if payment is None:
        return jsonify({"error": "Paiement introuvable"}), 404
    g.tenant.payments.delete(payment)
    return jsonify({"message": "Paiement supprimé avec succès"}), 200
