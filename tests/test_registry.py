"""
Tests du registre des bases par association (un fichier SQLite par tenant).
"""

import os

import pytest

from assocmanager.errors import Conflict, NotFound
from assocmanager.registry import TenantRegistry


class TestResolve:
    """Résolution d'un nom de fichier vers un handle."""

    def test_missing_file_is_not_found_and_not_cached(self, standalone_registry):
        """Un fichier absent lève NotFound sans laisser d'entrée partielle."""
        before = len(standalone_registry)
        with pytest.raises(NotFound) as exc:
            standalone_registry.resolve("assoc_absente_1.db")
        assert exc.value.status == 404
        assert "assoc_absente_1.db" not in standalone_registry
        assert len(standalone_registry) == before

    def test_handle_is_cached(self, standalone_registry):
        created = standalone_registry.create("assoc_a.db")
        assert standalone_registry.resolve("assoc_a.db") is created
        assert standalone_registry.resolve("assoc_a.db") is created

    def test_existing_file_is_opened_lazily(self, tmp_path):
        """Un fichier créé par un autre processus est ouvert au premier accès."""
        data_dir = str(tmp_path / "shared")
        first = TenantRegistry(data_dir, "default.db")
        first.create("assoc_b.db")
        first.dispose_all()

        second = TenantRegistry(data_dir, "default.db")
        assert "assoc_b.db" not in second
        handle = second.resolve("assoc_b.db")
        assert handle.name == "assoc_b.db"
        assert "assoc_b.db" in second
        second.dispose_all()

    def test_empty_name_means_default(self, standalone_registry):
        default = standalone_registry.create("default.db")
        assert standalone_registry.resolve(None) is default
        assert standalone_registry.resolve("") is default

    @pytest.mark.parametrize("name", ["../platform.db", "sub/dir.db", "..", "/etc/passwd"])
    def test_names_outside_data_dir_are_rejected(self, standalone_registry, name):
        with pytest.raises(NotFound):
            standalone_registry.resolve(name)


class TestLifecycle:
    """Création, éviction et fermeture des handles."""

    def test_create_writes_schema(self, standalone_registry):
        handle = standalone_registry.create("assoc_c.db")
        assert os.path.isfile(standalone_registry.path_for("assoc_c.db"))
        client = handle.client()
        try:
            assert client.users.count() == 0
            assert client.years.list_all() == []
        finally:
            client.close()

    def test_create_twice_is_conflict(self, standalone_registry):
        standalone_registry.create("assoc_d.db")
        with pytest.raises(Conflict):
            standalone_registry.create("assoc_d.db")

    def test_discard_evicts_handle(self, standalone_registry):
        standalone_registry.create("assoc_e.db")
        standalone_registry.discard("assoc_e.db")
        assert "assoc_e.db" not in standalone_registry
        # the file is still there, so it can be reopened
        assert standalone_registry.resolve("assoc_e.db").name == "assoc_e.db"

    def test_default_handle_is_adopted_from_app(self, app, registry):
        """La base par défaut vient du bind Flask-SQLAlchemy, pas d'une ouverture paresseuse."""
        from assocmanager.models import TENANT_BIND, db

        with app.app_context():
            assert registry.default().engine is db.engines[TENANT_BIND]
