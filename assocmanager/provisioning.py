"""Creation and removal of association databases."""

import logging
import os
import re
import time

from .accounts import hash_password
from .models import ROLE_ADMIN

logger = logging.getLogger(__name__)

DEFAULT_MEMBER_FIELD_LABEL = "Villa"


def slugify_code(code: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", code.lower())


def make_db_name(code: str) -> str:
    return f"assoc_{slugify_code(code)}_{int(time.time() * 1000)}.db"


def provision_association(registry, db_name, name, admin_email, admin_password, type=None):
    """Create ``db_name`` with the tenant schema, its ADMIN user and its config row.

    The file is removed again if seeding fails.
    """
    logger.info("provisioning association database %s", db_name)
    handle = registry.create(db_name)
    password_hash = hash_password(admin_password)
    client = handle.client()
    try:
        client.transaction([
            lambda tx: tx.users.create(
                email=admin_email, phone=None, password_hash=password_hash,
                role=ROLE_ADMIN, active=True,
            ),
            lambda tx: tx.config.create(
                name=name, type=type or "association",
                member_field_label=DEFAULT_MEMBER_FIELD_LABEL,
            ),
        ])
    except Exception:
        client.close()
        drop_association_database(registry, db_name)
        raise
    client.close()
    logger.info("association database ready: %s", db_name)
    return handle


def drop_association_database(registry, db_name):
    registry.discard(db_name)
    path = registry.path_for(db_name)
    if os.path.exists(path):
        os.remove(path)
        logger.info("association database removed: %s", db_name)
