# models.py: tenant schema (one SQLite file per association) + platform schema
import secrets
import threading
import time
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.dialects import sqlite

db = SQLAlchemy()

TENANT_BIND = "tenant"

ROLE_ADMIN = "ADMIN"
ROLE_MEMBER = "MEMBER"
ROLE_SUPER_ADMIN = "SUPER_ADMIN"

CONTRIBUTION_TYPES = ["décès", "mariage", "anniversaire", "solidarité", "autre"]

# ISO-8601 text in SQLite, native timestamps elsewhere
_ISO_FORMAT = "%(year)04d-%(month)02d-%(day)02dT%(hour)02d:%(minute)02d:%(second)02d.%(microsecond)06d"
_ISO_REGEXP = r"(\d+)-(\d+)-(\d+)[T ](\d+):(\d+):(\d+)(?:\.(\d+))?"
IsoDateTime = db.DateTime().with_variant(
    sqlite.DATETIME(storage_format=_ISO_FORMAT, regexp=_ISO_REGEXP), "sqlite"
)

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_id_lock = threading.Lock()
_last_ms = 0


def _base36(n: int) -> str:
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _B36[r] + out
    return out or "0"


def generate_id() -> str:
    """Time-ordered id: millisecond clock (never going backwards) + random suffix.

    Two ids minted in the same millisecond differ by their 48-bit suffix.
    """
    global _last_ms
    with _id_lock:
        ms = max(int(time.time() * 1000), _last_ms)
        _last_ms = ms
    return f"c{_base36(ms)}{secrets.token_hex(6)}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso(value):
    return value.isoformat() if value else None


class TimestampMixin:
    created_at = db.Column("createdAt", IsoDateTime, nullable=False, default=utcnow)
    updated_at = db.Column("updatedAt", IsoDateTime, nullable=False, default=utcnow, onupdate=utcnow)


# =========================== TENANT ===========================

class User(TimestampMixin, db.Model):
    __tablename__ = "User"
    __bind_key__ = TENANT_BIND

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column(db.String(50), unique=True, nullable=True)
    password_hash = db.Column("passwordHash", db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_MEMBER)
    # static access credential for passwordless member login
    token = db.Column(db.String(64), unique=True, nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True)

    member = db.relationship(
        "Member", back_populates="user", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self, include_token=True):
        return {
            "id": self.id,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "active": self.active,
            "token": self.token if include_token else None,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class Member(TimestampMixin, db.Model):
    __tablename__ = "Member"
    __bind_key__ = TENANT_BIND

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    user_id = db.Column("userId", db.String(40), db.ForeignKey("User.id", ondelete="CASCADE"),
                        unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    custom_field_value = db.Column("customFieldValue", db.String(255), nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True)

    user = db.relationship("User", back_populates="member")
    payments = db.relationship("MonthlyPayment", back_populates="member",
                               cascade="all, delete-orphan", passive_deletes=True)
    exceptional_payments = db.relationship("ExceptionalPayment", back_populates="member",
                                           cascade="all, delete-orphan", passive_deletes=True)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "customFieldValue": self.custom_field_value,
            "active": self.active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class AssociationConfig(TimestampMixin, db.Model):
    __tablename__ = "AssociationConfig"
    __bind_key__ = TENANT_BIND

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(100), nullable=True)
    member_field_label = db.Column("memberFieldLabel", db.String(100), nullable=False, default="Villa")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "memberFieldLabel": self.member_field_label,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class Year(TimestampMixin, db.Model):
    __tablename__ = "Year"
    __bind_key__ = TENANT_BIND

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    year = db.Column(db.Integer, unique=True, nullable=False)
    monthly_amount = db.Column("monthlyAmount", db.Float, nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            "id": self.id,
            "year": self.year,
            "monthlyAmount": self.monthly_amount,
            "active": self.active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class MonthlyPayment(TimestampMixin, db.Model):
    __tablename__ = "MonthlyPayment"
    __bind_key__ = TENANT_BIND
    __table_args__ = (db.CheckConstraint("month BETWEEN 1 AND 12", name="ck_month_range"),)

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    member_id = db.Column("memberId", db.String(40), db.ForeignKey("Member.id", ondelete="CASCADE"),
                          nullable=False, index=True)
    year_id = db.Column("yearId", db.String(40), db.ForeignKey("Year.id"), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    amount_paid = db.Column("amountPaid", db.Float, nullable=False)
    payment_date = db.Column("paymentDate", IsoDateTime, nullable=False, default=utcnow)
    notes = db.Column(db.Text, nullable=True)

    member = db.relationship("Member", back_populates="payments")

    def to_dict(self):
        return {
            "id": self.id,
            "memberId": self.member_id,
            "yearId": self.year_id,
            "month": self.month,
            "amountPaid": self.amount_paid,
            "paymentDate": iso(self.payment_date),
            "notes": self.notes,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class ExceptionalContribution(TimestampMixin, db.Model):
    __tablename__ = "ExceptionalContribution"
    __bind_key__ = TENANT_BIND

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    title = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text, nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True)

    payments = db.relationship(
        "ExceptionalPayment", back_populates="contribution",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by=lambda: ExceptionalPayment.payment_date.desc(),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "description": self.description,
            "active": self.active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


class ExceptionalPayment(TimestampMixin, db.Model):
    __tablename__ = "ExceptionalPayment"
    __bind_key__ = TENANT_BIND

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    contribution_id = db.Column("contributionId", db.String(40),
                                db.ForeignKey("ExceptionalContribution.id", ondelete="CASCADE"),
                                nullable=False, index=True)
    member_id = db.Column("memberId", db.String(40), db.ForeignKey("Member.id", ondelete="CASCADE"),
                          nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    payment_date = db.Column("paymentDate", IsoDateTime, nullable=False, default=utcnow)
    notes = db.Column(db.Text, nullable=True)

    contribution = db.relationship("ExceptionalContribution", back_populates="payments")
    member = db.relationship("Member", back_populates="exceptional_payments")

    def to_dict(self):
        return {
            "id": self.id,
            "contributionId": self.contribution_id,
            "memberId": self.member_id,
            "amount": self.amount,
            "paymentDate": iso(self.payment_date),
            "notes": self.notes,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


# =========================== PLATFORM ===========================

class Association(TimestampMixin, db.Model):
    __tablename__ = "Association"

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(100), nullable=False, default="association")
    code = db.Column(db.String(100), unique=True, nullable=False)
    db_name = db.Column("dbName", db.String(255), unique=True, nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)
    admin_email = db.Column("adminEmail", db.String(255), nullable=True)
    admin_name = db.Column("adminName", db.String(255), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "code": self.code,
            "dbName": self.db_name,
            "active": self.active,
            "adminEmail": self.admin_email,
            "adminName": self.admin_name,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def public_dict(self):
        return {"id": self.id, "name": self.name, "type": self.type, "code": self.code}


class SuperAdmin(TimestampMixin, db.Model):
    __tablename__ = "SuperAdmin"

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column("passwordHash", db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {"id": self.id, "email": self.email, "name": self.name, "role": ROLE_SUPER_ADMIN}


class PlatformConfig(TimestampMixin, db.Model):
    __tablename__ = "PlatformConfig"

    id = db.Column(db.String(40), primary_key=True, default=generate_id)
    name = db.Column(db.String(255), nullable=False)
    version = db.Column(db.String(50), nullable=True)
