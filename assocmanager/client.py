"""Request-scoped tenant client and its transaction handle."""

import logging

from .repositories import (
    AssociationConfigRepository,
    ExceptionalContributionRepository,
    ExceptionalPaymentRepository,
    MemberRepository,
    MonthlyPaymentRepository,
    UserRepository,
    YearRepository,
)

logger = logging.getLogger(__name__)


class _Repositories:
    def __init__(self, session, autocommit: bool):
        self.session = session
        self.users = UserRepository(session, autocommit)
        self.members = MemberRepository(session, autocommit)
        self.years = YearRepository(session, autocommit)
        self.payments = MonthlyPaymentRepository(session, autocommit)
        self.config = AssociationConfigRepository(session, autocommit)
        self.contributions = ExceptionalContributionRepository(session, autocommit)
        self.exceptional_payments = ExceptionalPaymentRepository(session, autocommit)


class Transaction(_Repositories):
    """Repositories inside an open transaction. Writes are flushed, never committed here.

    Has no ``transaction`` method: transactions do not nest.
    """

    def __init__(self, session):
        super().__init__(session, autocommit=False)


class TenantClient(_Repositories):
    """Repositories over one tenant session; each write commits on its own."""

    def __init__(self, session, name: str | None = None):
        super().__init__(session, autocommit=True)
        self.name = name

    def transaction(self, unit_of_work):
        """Run ``unit_of_work`` atomically.

        ``unit_of_work`` is either a callable taking a :class:`Transaction`, or a
        list of such callables run in order (their results are returned as a
        list). Commits on success; on any exception rolls back and re-raises it
        unchanged.
        """
        session = self.session
        if session.in_transaction():
            session.commit()
        tx = Transaction(session)
        try:
            if callable(unit_of_work):
                result = unit_of_work(tx)
            else:
                result = [op(tx) for op in unit_of_work]
            session.commit()
        except Exception as err:
            session.rollback()
            logger.warning("transaction rolled back on %s: %s", self.name, err)
            raise
        return result

    def close(self):
        self.session.close()
