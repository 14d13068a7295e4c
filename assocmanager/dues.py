"""Dues arithmetic: a member has paid a month once the sum of its payments
for that month reaches the year's monthly amount."""

MONTHS = [
    "Janvier", "Février", "Mars", "Avril", "Mai", "Juin",
    "Juillet", "Août", "Septembre", "Octobre", "Novembre", "Décembre",
]


def percentage(paid: float, due: float) -> float:
    return round(paid / due * 100, 2) if due > 0 else 0


def month_total(payments, month: int) -> float:
    return sum(p.amount_paid for p in payments if p.month == month)


def is_month_paid(total_paid: float, monthly_amount: float) -> bool:
    return total_paid >= monthly_amount


def summarize(payments, monthly_amount: float) -> dict:
    total_paid = sum(p.amount_paid for p in payments)
    total_due = monthly_amount * 12
    return {
        "totalPaid": total_paid,
        "totalDue": total_due,
        "remaining": total_due - total_paid,
        "percentage": percentage(total_paid, total_due),
    }


def month_grid(payments, monthly_amount: float, detailed: bool = False) -> dict:
    grid = {}
    for month in range(1, 13):
        of_month = [p for p in payments if p.month == month]
        paid = sum(p.amount_paid for p in of_month)
        cell = {
            "paid": is_month_paid(paid, monthly_amount),
            "amountPaid": paid,
            "payments": [p.to_dict() for p in of_month],
        }
        if detailed:
            cell["monthName"] = MONTHS[month - 1]
            cell["amountDue"] = monthly_amount
            cell["remaining"] = max(0, monthly_amount - paid)
        grid[month] = cell
    return grid


def member_row(member, payments, year) -> dict:
    return {
        "id": member.id,
        "userId": member.user_id,
        "name": member.name,
        "customFieldValue": member.custom_field_value,
        "phone": member.user.phone if member.user else None,
        "paymentsByMonth": month_grid(payments, year.monthly_amount),
        **summarize(payments, year.monthly_amount),
    }


def year_stats(year, year_payments, members_with_payments) -> dict:
    """Totals for a year. Dues count active members only, collected money
    counts every payment recorded on the year."""
    due_per_member = year.monthly_amount * 12
    total_paid = sum(p.amount_paid for p in year_payments)
    up_to_date = 0
    for _member, payments in members_with_payments:
        if sum(p.amount_paid for p in payments) >= due_per_member:
            up_to_date += 1
    count = len(members_with_payments)
    total_due = due_per_member * count
    return {
        "year": year.to_dict(),
        "activeMembersCount": count,
        "totalPaid": total_paid,
        "totalDue": total_due,
        "remaining": total_due - total_paid,
        "percentage": percentage(total_paid, total_due),
        "membersUpToDate": up_to_date,
        "membersLate": count - up_to_date,
    }
