# export_routes.py: CSV downloads for the members list and a year's statistics
from flask import Blueprint, Response, g, jsonify

from .auth import admin_required, load_tenant_user
from .csv_io import members_to_csv, statistics_to_csv

bp = Blueprint("export", __name__, url_prefix="/api/export")
bp.before_request(load_tenant_user)


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        body,
        content_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@bp.get("/members")
@admin_required
def export_members():
    users = g.tenant.users.list_members_oldest_first()
    return _csv_response(members_to_csv(users), "membres.csv")


@bp.get("/statistics/<year_id>")
@admin_required
def export_statistics(year_id):
    year = g.tenant.years.get(year_id)
    if year is None:
        return jsonify({"error": "Année introuvable"}), 404
    rows = g.tenant.members.list_active_with_payments_for_year(year.id)
    return _csv_response(statistics_to_csv(rows, year), f"statistiques_{year.year}.csv")
