# import_routes.py: bulk member creation from "nom;champ;telephone" text or a previewed list
from flask import Blueprint, current_app, g, jsonify, request

from .accounts import create_member_account
from .auth import admin_required, load_tenant_user
from .csv_io import parse_member_import
from .errors import AppError
from .utils import clean_str

bp = Blueprint("import", __name__, url_prefix="/api/import")
bp.before_request(load_tenant_user)


def _read_content():
    data = request.get_json(silent=True) or {}
    content = data.get("content") or data.get("csvContent") or ""
    return content if isinstance(content, str) else ""


@bp.post("/members/preview")
@admin_required
def preview_members():
    content = _read_content()
    if not content.strip():
        return jsonify({"error": "Contenu requis"}), 400

    rows, errors, total = parse_member_import(content)
    valid, duplicates = [], []
    for row in rows:
        existing = g.tenant.users.find_by_phone(row["phone"]) if row["phone"] else None
        if existing is not None:
            duplicates.append({**row, "existingUserId": existing.id})
        else:
            valid.append(row)

    return jsonify({
        "total": total,
        "valid": valid,
        "duplicates": duplicates,
        "errors": errors,
        "summary": {
            "total": total,
            "valid": len(valid),
            "duplicates": len(duplicates),
            "errors": len(errors),
        },
    }), 200


def _rows_from_request(data):
    """Previewed rows from ``members``, or rows parsed from raw ``content``."""
    members = data.get("members")
    if members is not None:
        if not isinstance(members, list):
            return None, []
        rows, errors = [], []
        for index, item in enumerate(members, start=1):
            item = item if isinstance(item, dict) else {}
            name = clean_str(item.get("name"))
            if not name:
                errors.append({"line": item.get("line", index), "name": None, "error": "Le nom est requis"})
                continue
            rows.append({
                "line": item.get("line", index),
                "name": name,
                "customFieldValue": clean_str(item.get("customFieldValue")),
                "phone": clean_str(item.get("phone")),
            })
        return rows, errors

    content = data.get("content") or data.get("csvContent") or ""
    if not isinstance(content, str) or not content.strip():
        return None, []
    rows, errors, _total = parse_member_import(content)
    return rows, [{"line": e["line"], "name": e.get("content"), "error": e["error"]} for e in errors]


@bp.post("/members")
@admin_required
def import_members():
    data = request.get_json(silent=True) or {}
    rows, errors = _rows_from_request(data)
    if rows is None:
        return jsonify({"error": "Liste de membres requise"}), 400

    results = []
    for row in rows:
        try:
            user, member, password = create_member_account(
                g.tenant, row["name"], row["customFieldValue"], phone=row["phone"],
            )
        except AppError as e:
            # one bad row does not stop the import
            errors.append({"line": row["line"], "name": row["name"], "error": e.message})
            continue
        results.append({
            "id": user.id,
            "name": member.name,
            "customFieldValue": member.custom_field_value,
            "phone": user.phone,
            "email": user.email,
            "password": password,
            "token": user.token,
            "status": "created",
        })

    current_app.logger.info(f"member import in {g.tenant_name}: {len(results)} created, {len(errors)} failed")
    return jsonify({
        "success": len(results),
        "failed": len(errors),
        "results": results,
        "errors": errors,
    }), 200
