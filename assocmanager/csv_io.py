"""
csv_io.py
CSV exports (pandas) and the semicolon member import format.
"""

import pandas as pd

from .dues import summarize

MEMBER_COLUMNS = ["Nom", "Champ personnalisé", "Téléphone", "Actif"]
STATISTICS_COLUMNS = ["Nom", "Champ personnalisé", "Dû (FCFA)", "Payé (FCFA)", "Reste (FCFA)", "Pourcentage"]


def _amount(value: float) -> str:
    value = round(float(value), 2)
    return str(int(value)) if value.is_integer() else str(value)


def members_to_csv(users) -> str:
    rows = [
        [u.member.name, u.member.custom_field_value or "", u.phone or "", "Oui" if u.active else "Non"]
        for u in users
        if u.member is not None
    ]
    return pd.DataFrame(rows, columns=MEMBER_COLUMNS).to_csv(index=False)


def statistics_to_csv(members_with_payments, year) -> str:
    rows = []
    for member, payments in members_with_payments:
        s = summarize(payments, year.monthly_amount)
        rows.append([
            member.name,
            member.custom_field_value or "",
            _amount(s["totalDue"]),
            _amount(s["totalPaid"]),
            _amount(s["remaining"]),
            f"{s['percentage']:.2f}%",
        ])
    return pd.DataFrame(rows, columns=STATISTICS_COLUMNS).to_csv(index=False)


def _is_comment(line: str) -> bool:
    return not line or line.startswith("#") or line.startswith("//")


def parse_member_import(content: str):
    """Parse ``name;customFieldValue;phone`` lines.

    Returns ``(rows, errors, total)``: rows carry their 1-based line number,
    errors describe rejected lines, total counts non-comment lines.
    """
    rows, errors, total = [], [], 0
    for number, raw in enumerate(content.strip().split("\n"), start=1):
        line = raw.strip()
        if _is_comment(line):
            continue
        total += 1
        parts = [p.strip() for p in line.split(";")]
        if len(parts) < 2:
            errors.append({"line": number, "content": line,
                           "error": "Format invalide (minimum: nom;champ_personnalise)"})
            continue
        name, custom_field_value = parts[0], parts[1]
        if not name:
            errors.append({"line": number, "content": line, "error": "Le nom est requis"})
            continue
        phone = " ".join(parts[2].split()) if len(parts) > 2 else ""
        rows.append({
            "line": number,
            "name": name,
            "customFieldValue": custom_field_value,
            "phone": phone or None,
        })
    return rows, errors, total
