"""
Tests de la couche plateforme (SUPER_ADMIN): provisioning et cycle de vie des associations.
"""

import os

import pytest

from assocmanager.models import SuperAdmin, db
from assocmanager.provisioning import make_db_name, slugify_code

from conftest import SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD


def _new_association(client, headers, code="ASSO-X", **fields):
    body = {"name": f"Association {code}", "code": code, "adminEmail": f"admin@{code.lower()}.org",
            "adminPassword": "pass1", **fields}
    return client.post("/api/platform/associations", json=body, headers=headers)


class TestProvisioningHelpers:
    def test_slug_and_db_name(self):
        assert slugify_code("Cité-Verte 2") == "cit__verte_2"
        name = make_db_name("ASSO-B")
        assert name.startswith("assoc_asso_b_") and name.endswith(".db")


class TestPlatformLogin:
    def test_wrong_password(self, client):
        res = client.post("/api/platform/login", json={"email": SUPERADMIN_EMAIL, "password": "nope"})
        assert res.status_code == 401
        assert res.get_json() == {"error": "Identifiants invalides"}

    def test_missing_fields(self, client):
        res = client.post("/api/platform/login", json={"email": SUPERADMIN_EMAIL})
        assert res.status_code == 400

    def test_inactive_super_admin_is_refused_before_password_check(self, app, client):
        with app.app_context():
            admin = SuperAdmin.query.filter_by(email=SUPERADMIN_EMAIL).one()
            admin.active = False
            db.session.commit()

        for password in (SUPERADMIN_PASSWORD, "mauvais"):
            res = client.post("/api/platform/login", json={"email": SUPERADMIN_EMAIL, "password": password})
            assert res.status_code == 401
            assert res.get_json() == {"error": "Compte désactivé"}

    def test_me(self, client, platform_headers):
        body = client.get("/api/platform/me", headers=platform_headers).get_json()
        assert body["email"] == SUPERADMIN_EMAIL
        assert body["role"] == "SUPER_ADMIN"


class TestAssociations:
    def test_default_association_is_seeded(self, client, platform_headers):
        rows = client.get("/api/platform/associations", headers=platform_headers).get_json()
        assert [a["code"] for a in rows] == ["V1-DEFAULT"]

    def test_create_provisions_database_and_admin(self, app, client, platform_headers, registry):
        res = _new_association(client, platform_headers, code="ASSO-X", type="tontine")
        assert res.status_code == 201
        body = res.get_json()
        assert body["dbName"].startswith("assoc_asso_x_")
        assert os.path.isfile(os.path.join(app.config["DATA_DIR"], body["dbName"]))
        assert body["dbName"] in registry

        login = client.post("/api/auth/login", json={
            "associationCode": "ASSO-X", "identifier": "admin@asso-x.org", "password": "pass1",
        })
        assert login.status_code == 200
        headers = {"Authorization": f"Bearer {login.get_json()['token']}"}
        config = client.get("/api/config", headers=headers).get_json()
        assert config["name"] == "Association ASSO-X"
        assert config["type"] == "tontine"
        assert config["memberFieldLabel"] == "Villa"

    def test_duplicate_code_is_409_without_new_file(self, app, client, platform_headers):
        _new_association(client, platform_headers, code="ASSO-Y")
        files_before = sorted(os.listdir(app.config["DATA_DIR"]))
        res = _new_association(client, platform_headers, code="ASSO-Y")
        assert res.status_code == 409
        assert res.get_json() == {"error": "Ce code existe déjà"}
        assert sorted(os.listdir(app.config["DATA_DIR"])) == files_before

    def test_missing_fields(self, client, platform_headers):
        res = client.post("/api/platform/associations", json={"name": "X"}, headers=platform_headers)
        assert res.status_code == 400

    def test_toggle_blocks_login(self, client, platform_headers):
        created = _new_association(client, platform_headers, code="ASSO-Z").get_json()
        res = client.put(f"/api/platform/associations/{created['id']}/toggle", headers=platform_headers)
        assert res.get_json()["active"] is False

        login = client.post("/api/auth/login", json={
            "associationCode": "ASSO-Z", "identifier": "admin@asso-z.org", "password": "pass1",
        })
        assert login.status_code == 403
        assert login.get_json() == {"error": "Association désactivée"}

    def test_update(self, client, platform_headers):
        created = _new_association(client, platform_headers, code="ASSO-U").get_json()
        res = client.put(f"/api/platform/associations/{created['id']}", json={"adminName": "Mme Ndiaye"},
                         headers=platform_headers)
        assert res.status_code == 200
        assert res.get_json()["adminName"] == "Mme Ndiaye"

    def test_delete_removes_file_and_handle(self, app, client, platform_headers, registry):
        created = _new_association(client, platform_headers, code="ASSO-D").get_json()
        path = os.path.join(app.config["DATA_DIR"], created["dbName"])
        assert os.path.isfile(path)

        res = client.delete(f"/api/platform/associations/{created['id']}", headers=platform_headers)
        assert res.status_code == 200
        assert not os.path.exists(path)
        assert created["dbName"] not in registry
        assert client.get(f"/api/platform/associations/{created['id']}",
                          headers=platform_headers).status_code == 404

    def test_default_association_cannot_be_deleted(self, client, platform_headers):
        default = client.get("/api/platform/associations", headers=platform_headers).get_json()[0]
        res = client.delete(f"/api/platform/associations/{default['id']}", headers=platform_headers)
        assert res.status_code == 400
        assert res.get_json() == {"error": "Impossible de supprimer l'association par défaut"}

    def test_stats(self, client, platform_headers):
        created = _new_association(client, platform_headers, code="ASSO-S").get_json()
        client.put(f"/api/platform/associations/{created['id']}/toggle", headers=platform_headers)
        stats = client.get("/api/platform/stats", headers=platform_headers).get_json()
        assert stats == {
            "totalAssociations": 2,
            "activeAssociations": 1,
            "inactiveAssociations": 1,
            "superAdmins": 1,
        }


class TestHealth:
    def test_api_root(self, client):
        res = client.get("/api")
        assert res.status_code == 200
        assert res.get_json() == {"message": "AssocManager API", "status": "OK"}

    def test_unknown_route_is_json(self, client):
        res = client.get("/api/nothing-here")
        assert res.status_code == 404
        assert "error" in res.get_json()


@pytest.mark.parametrize("command,expected", [("init-db", "Tenant database ready"), ("init-platform", "Platform ready")])
def test_cli_commands_are_idempotent(app, command, expected):
    result = app.test_cli_runner().invoke(args=[command])
    assert result.exit_code == 0, result.output
    assert expected in result.output
