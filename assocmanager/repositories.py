"""Per-entity repositories over a tenant session.

Each repository exposes the queries the API actually runs. With
``autocommit`` on (the request client) every write is committed at once; in
a :class:`~assocmanager.client.Transaction` writes are only flushed and the
unit of work decides.
"""

from sqlalchemy import delete, func, inspect as sa_inspect, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from .errors import Conflict, InvalidArgument
from .models import (
    ROLE_ADMIN,
    ROLE_MEMBER,
    AssociationConfig,
    ExceptionalContribution,
    ExceptionalPayment,
    Member,
    MonthlyPayment,
    User,
    Year,
    utcnow,
)

_UNIQUE_MESSAGES = {
    "User.email": "Cet email est déjà utilisé",
    "User.phone": "Ce numéro de téléphone est déjà utilisé",
    "User.token": "Ce token d'accès est déjà utilisé",
    "Member.userId": "Ce compte possède déjà une fiche membre",
    "Year.year": "Cette année existe déjà",
    "Association.code": "Ce code existe déjà",
    "Association.dbName": "Cette base de données existe déjà",
    "SuperAdmin.email": "Cet email est déjà utilisé",
}


def translate_integrity_error(err: IntegrityError):
    text = str(getattr(err, "orig", err))
    if "UNIQUE constraint failed" in text:
        column = text.split(":", 1)[1].split(",")[0].strip()
        return Conflict(_UNIQUE_MESSAGES.get(column, "Valeur déjà utilisée"), field=column.split(".")[-1])
    if "duplicate key" in text:
        for column, message in _UNIQUE_MESSAGES.items():
            table, field = column.split(".")
            if f"{table}_{field}" in text:
                return Conflict(message, field=field)
        return Conflict("Valeur déjà utilisée")
    if "FOREIGN KEY" in text:
        return InvalidArgument("Référence introuvable")
    if "NOT NULL" in text:
        return InvalidArgument("Champ requis manquant")
    return InvalidArgument("Valeur invalide")


class Repository:
    model = None

    def __init__(self, session, autocommit: bool = True):
        self.session = session
        self.autocommit = autocommit

    def get(self, id):
        if not id:
            return None
        return self.session.get(self.model, id)

    def create(self, **fields):
        obj = self.model(**self._checked(fields))
        self.session.add(obj)
        self._write()
        return obj

    def update(self, obj, **fields):
        for key, value in self._checked(fields).items():
            setattr(obj, key, value)
        self._write()
        return obj

    def delete(self, obj):
        self.session.delete(obj)
        self._write()

    def count(self, **filters) -> int:
        stmt = select(func.count()).select_from(self.model).where(
            *[getattr(self.model, key) == value for key, value in self._checked(filters).items()]
        )
        return self.session.scalar(stmt) or 0

    def _first(self, stmt):
        return self.session.scalars(stmt.limit(1)).first()

    def _checked(self, fields: dict) -> dict:
        columns = {attr.key for attr in sa_inspect(self.model).column_attrs}
        unknown = sorted(k for k in fields if k not in columns)
        if unknown:
            raise InvalidArgument(f"Champ inconnu pour {self.model.__name__}: {', '.join(unknown)}")
        return fields

    def _write(self):
        try:
            self.session.flush()
            if self.autocommit:
                self.session.commit()
        except IntegrityError as err:
            if self.autocommit:
                self.session.rollback()
            raise translate_integrity_error(err) from err


class UserRepository(Repository):
    model = User

    def get_with_member(self, id):
        if not id:
            return None
        return self.session.get(User, id, options=[selectinload(User.member)])

    def find_by_email(self, email):
        return self._first(select(User).where(User.email == email))

    def find_by_phone(self, phone):
        return self._first(select(User).where(User.phone == phone))

    def find_active_by_identifier(self, identifier):
        stmt = select(User).where(
            or_(User.email == identifier, User.phone == identifier),
            User.active.is_(True),
        )
        return self._first(stmt)

    def find_active_by_access_token(self, token):
        return self._first(select(User).where(User.token == token, User.active.is_(True)))

    def get_with_role(self, id, role):
        user = self.get(id)
        return user if user is not None and user.role == role else None

    def list_members(self, search=None, active=None):
        stmt = select(User).where(User.role == ROLE_MEMBER)
        if active is not None:
            stmt = stmt.where(User.active.is_(active))
        if search:
            like = f"%{search}%"
            stmt = stmt.join(User.member).where(
                or_(Member.name.ilike(like), Member.custom_field_value.ilike(like))
            )
        return self.session.scalars(stmt.order_by(User.created_at.desc())).all()

    def list_members_oldest_first(self):
        stmt = select(User).where(User.role == ROLE_MEMBER).order_by(User.created_at.asc())
        return self.session.scalars(stmt).all()

    def list_admins(self):
        stmt = select(User).where(User.role == ROLE_ADMIN).order_by(User.created_at.desc())
        return self.session.scalars(stmt).all()


class MemberRepository(Repository):
    model = Member

    def get_by_user_id(self, user_id):
        return self._first(select(Member).where(Member.user_id == user_id))

    def find_by_id_or_user_id(self, ident):
        return self.get(ident) or self.get_by_user_id(ident)

    def count_active(self) -> int:
        return self.count(active=True)

    def list_active(self):
        stmt = select(Member).where(Member.active.is_(True)).order_by(Member.name.asc())
        return self.session.scalars(stmt).all()

    def list_active_with_payments_for_year(self, year_id):
        """Active members by name, each paired with its payments for the year.

        One payment query per member.
        """
        payments = MonthlyPaymentRepository(self.session, self.autocommit)
        return [(m, payments.list_for_member_year(m.id, year_id)) for m in self.list_active()]


class YearRepository(Repository):
    model = Year

    def list_all(self):
        return self.session.scalars(select(Year).order_by(Year.year.desc())).all()

    def get_by_year(self, year: int):
        return self._first(select(Year).where(Year.year == year))

    def get_active(self):
        return self._first(select(Year).where(Year.active.is_(True)))

    def list_active(self):
        return self.session.scalars(select(Year).where(Year.active.is_(True))).all()

    def update_many(self, only_active: bool = False, **values) -> int:
        stmt = update(Year)
        if only_active:
            stmt = stmt.where(Year.active.is_(True))
        changes = {getattr(Year, key): value for key, value in self._checked(values).items()}
        changes[Year.updated_at] = utcnow()
        result = self.session.execute(stmt.values(changes))
        self._write()
        return result.rowcount

    def deactivate_all(self) -> int:
        return self.update_many(only_active=True, active=False)

    def activate(self, year):
        self.deactivate_all()
        return self.update(year, active=True)


class MonthlyPaymentRepository(Repository):
    model = MonthlyPayment

    def list_for_member_year(self, member_id, year_id):
        stmt = (
            select(MonthlyPayment)
            .where(MonthlyPayment.member_id == member_id, MonthlyPayment.year_id == year_id)
            .order_by(MonthlyPayment.month.asc(), MonthlyPayment.payment_date.asc())
        )
        return self.session.scalars(stmt).all()

    def list_for_year(self, year_id):
        stmt = select(MonthlyPayment).where(MonthlyPayment.year_id == year_id)
        return self.session.scalars(stmt).all()

    def count_for_year(self, year_id) -> int:
        return self.count(year_id=year_id)

    def total_for_month(self, member_id, year_id, month) -> float:
        stmt = select(func.coalesce(func.sum(MonthlyPayment.amount_paid), 0)).where(
            MonthlyPayment.member_id == member_id,
            MonthlyPayment.year_id == year_id,
            MonthlyPayment.month == month,
        )
        return float(self.session.scalar(stmt) or 0)

    def upsert(self, member_id, year_id, month, create: dict, update: dict):
        existing = self._first(
            select(MonthlyPayment)
            .where(
                MonthlyPayment.member_id == member_id,
                MonthlyPayment.year_id == year_id,
                MonthlyPayment.month == month,
            )
            .order_by(MonthlyPayment.payment_date.asc())
        )
        if existing is not None:
            return self.update(existing, **update)
        return self.create(member_id=member_id, year_id=year_id, month=month, **create)

    def delete_for_member(self, member_id) -> int:
        result = self.session.execute(delete(MonthlyPayment).where(MonthlyPayment.member_id == member_id))
        self._write()
        return result.rowcount


class AssociationConfigRepository(Repository):
    model = AssociationConfig

    DEFAULTS = {"name": "Mon Association", "type": "Association", "member_field_label": "Villa"}

    def first(self):
        return self._first(select(AssociationConfig).order_by(AssociationConfig.created_at.asc()))

    def get_or_create(self):
        config = self.first()
        if config is None:
            config = self.create(**self.DEFAULTS)
        return config

    def save(self, **fields):
        config = self.first()
        if config is None:
            return self.create(**fields)
        return self.update(config, **fields)


class ExceptionalContributionRepository(Repository):
    model = ExceptionalContribution

    def list(self, active=None):
        stmt = select(ExceptionalContribution)
        if active is not None:
            stmt = stmt.where(ExceptionalContribution.active.is_(active))
        return self.session.scalars(stmt.order_by(ExceptionalContribution.created_at.desc())).all()


class ExceptionalPaymentRepository(Repository):
    model = ExceptionalPayment

    def delete_for_member(self, member_id) -> int:
        result = self.session.execute(delete(ExceptionalPayment).where(ExceptionalPayment.member_id == member_id))
        self._write()
        return result.rowcount
