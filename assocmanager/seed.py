# seed.py: default tenant admin/config + platform SUPER_ADMIN, also as flask CLI commands
import logging

import click
from flask import current_app

from .accounts import create_admin_account, hash_password
from .models import Association, PlatformConfig, SuperAdmin, db

logger = logging.getLogger(__name__)

DEFAULT_ASSOCIATION_CODE = "V1-DEFAULT"


def seed_default_tenant(registry):
    cfg = current_app.config
    client = registry.default().client()
    try:
        if client.users.count() == 0:
            create_admin_account(client, cfg["ADMIN_EMAIL"], cfg["ADMIN_PASSWORD"])
            logger.info("[seed] default admin created: %s", cfg["ADMIN_EMAIL"])
        client.config.get_or_create()
    finally:
        client.close()


def seed_platform(default_db_name):
    cfg = current_app.config
    if PlatformConfig.query.first() is None:
        db.session.add(PlatformConfig(name="AssocManager Platform", version="2.0.0"))
    if SuperAdmin.query.filter_by(email=cfg["SUPERADMIN_EMAIL"]).first() is None:
        db.session.add(SuperAdmin(
            email=cfg["SUPERADMIN_EMAIL"],
            password_hash=hash_password(cfg["SUPERADMIN_PASSWORD"]),
            name="Super Administrateur",
            active=True,
        ))
        logger.info("[seed] SUPER_ADMIN created: %s", cfg["SUPERADMIN_EMAIL"])
    if Association.query.first() is None:
        # the boot-time tenant is registered as the first association
        db.session.add(Association(
            name="Association V1 (Migration)",
            type="association",
            code=DEFAULT_ASSOCIATION_CODE,
            db_name=default_db_name,
            active=True,
            admin_email=cfg["ADMIN_EMAIL"],
            admin_name="Administrateur V1",
        ))
    db.session.commit()


def register_commands(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create the default tenant schema, its admin and its config."""
        registry = app.extensions["tenant_registry"]
        db.create_all()
        seed_default_tenant(registry)
        click.echo(f"Tenant database ready: {registry.default_name}")

    @app.cli.command("init-platform")
    def init_platform_command():
        """Create the platform schema, the SUPER_ADMIN and the default association."""
        db.create_all()
        seed_platform(app.extensions["tenant_registry"].default_name)
        click.echo("Platform ready")
