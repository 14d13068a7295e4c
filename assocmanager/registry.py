"""Tenant database registry.

Every association lives in its own SQLite file under ``DATA_DIR``. The
registry maps a file name to an open :class:`TenantDatabase` (engine +
session factory), opening it on first use and keeping it for the lifetime of
the process. The default file is adopted from the Flask-SQLAlchemy ``tenant``
bind at boot instead of being opened lazily.
"""

import logging
import os
import threading

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from .client import TenantClient
from .errors import Conflict, NotFound
from .models import TENANT_BIND, db

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_conn, _record):
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def tenant_metadata():
    return db.metadatas[TENANT_BIND]


class TenantDatabase:
    """Handle on one tenant file."""

    def __init__(self, name: str, engine):
        self.name = name
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def session(self):
        return self._sessions()

    def client(self) -> TenantClient:
        return TenantClient(self.session(), self.name)

    def create_schema(self):
        tenant_metadata().create_all(self.engine)

    def dispose(self):
        self.engine.dispose()

    def __repr__(self):
        return f"<TenantDatabase {self.name}>"


class TenantRegistry:
    def __init__(self, data_dir: str, default_name: str, engine_options: dict | None = None):
        self.data_dir = os.path.abspath(data_dir)
        self.default_name = default_name
        self._engine_options = dict(engine_options or {})
        self._handles: dict[str, TenantDatabase] = {}
        self._lock = threading.Lock()

    # ---------- lookups ----------
    def path_for(self, db_name: str) -> str:
        # plain file names only, nothing that walks out of DATA_DIR
        if not db_name or os.path.basename(db_name) != db_name or db_name in (".", ".."):
            raise NotFound("Base de données introuvable")
        return os.path.join(self.data_dir, db_name)

    def url_for(self, db_name: str) -> str:
        return f"sqlite:///{self.path_for(db_name)}"

    def default(self) -> TenantDatabase:
        return self.resolve(self.default_name)

    def resolve(self, db_name: str | None) -> TenantDatabase:
        name = db_name or self.default_name
        handle = self._handles.get(name)
        if handle is not None:
            return handle
        with self._lock:
            handle = self._handles.get(name)
            if handle is None:
                path = self.path_for(name)
                if not os.path.isfile(path):
                    raise NotFound("Base de données introuvable")
                handle = self._open(name, path)
                self._handles[name] = handle
        return handle

    # ---------- lifecycle ----------
    def adopt_default(self, engine) -> TenantDatabase:
        """Register the boot-time engine under the default file name."""
        event.listen(engine, "connect", _enable_foreign_keys)
        handle = TenantDatabase(self.default_name, engine)
        with self._lock:
            self._handles[self.default_name] = handle
        return handle

    def create(self, db_name: str) -> TenantDatabase:
        """Create a new tenant file with the full schema and register it."""
        path = self.path_for(db_name)
        with self._lock:
            if db_name in self._handles or os.path.exists(path):
                raise Conflict("Cette base de données existe déjà", field="dbName")
            os.makedirs(self.data_dir, exist_ok=True)
            handle = self._open(db_name, path)
            handle.create_schema()
            self._handles[db_name] = handle
        return handle

    def discard(self, db_name: str):
        with self._lock:
            handle = self._handles.pop(db_name, None)
        if handle is not None:
            handle.dispose()
            logger.info("tenant handle discarded: %s", db_name)

    def dispose_all(self):
        with self._lock:
            handles = list(self._handles.values())
        for handle in handles:
            handle.dispose()

    def __contains__(self, db_name):
        return db_name in self._handles

    def __len__(self):
        return len(self._handles)

    def _open(self, name: str, path: str) -> TenantDatabase:
        engine = create_engine(f"sqlite:///{path}", **self._engine_options)
        event.listen(engine, "connect", _enable_foreign_keys)
        logger.info("tenant handle opened: %s", name)
        return TenantDatabase(name, engine)
