"""
Tests d'authentification: login, résolution du tenant, séparation des jetons.
"""

from datetime import datetime, timedelta, timezone

import jwt

from conftest import ADMIN_EMAIL, JWT_SECRET, bearer


def _tenant_token(claims, secret=JWT_SECRET, days=1):
    payload = {"aud": "tenant", "exp": datetime.now(timezone.utc) + timedelta(days=days), **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


class TestLogin:
    def test_wrong_password_is_401(self, client, create_member):
        create_member(name="Moussa", phone="655000000", password="secret1")
        res = client.post("/api/auth/login", json={"phone": "655000000", "password": "wrong"})
        assert res.status_code == 401
        assert res.get_json() == {"error": "Identifiants invalides"}

    def test_phone_login_returns_token_with_user_id(self, app, client, create_member):
        created = create_member(name="Moussa", phone="655000000", password="secret1")
        res = client.post("/api/auth/login", json={"phone": "655000000", "password": "secret1"})
        assert res.status_code == 200
        body = res.get_json()
        claims = jwt.decode(body["token"], JWT_SECRET, algorithms=["HS256"], audience="tenant")
        assert claims["userId"] == created["id"]
        assert body["user"]["role"] == "MEMBER"
        assert body["user"]["member"]["name"] == "Moussa"
        assert body["association"] is None

    def test_access_token_login(self, client, create_member):
        created = create_member(name="Fatou", phone="677000000")
        res = client.post("/api/auth/login", json={"accessToken": created["token"]})
        assert res.status_code == 200
        assert res.get_json()["user"]["id"] == created["id"]

        res = client.post("/api/auth/login", json={"accessToken": "nope"})
        assert res.status_code == 401
        assert res.get_json() == {"error": "Token d'accès invalide"}

    def test_missing_credentials_is_400(self, client):
        res = client.post("/api/auth/login", json={"identifier": ADMIN_EMAIL})
        assert res.status_code == 400

    def test_unknown_association_code(self, client):
        res = client.post("/api/auth/login",
                          json={"associationCode": "NOPE", "identifier": ADMIN_EMAIL, "password": "admin"})
        assert res.status_code == 404
        assert res.get_json() == {"error": "Association introuvable"}

    def test_login_with_default_association_code(self, client):
        res = client.post("/api/auth/login",
                          json={"associationCode": "V1-DEFAULT", "identifier": ADMIN_EMAIL, "password": "admin"})
        assert res.status_code == 200
        body = res.get_json()
        assert body["association"]["code"] == "V1-DEFAULT"
        claims = jwt.decode(body["token"], JWT_SECRET, algorithms=["HS256"], audience="tenant")
        assert claims["dbName"] == "assocmanager.db"

        me = client.get("/api/auth/me", headers=bearer(body["token"]))
        assert me.status_code == 200
        assert me.get_json()["association"]["code"] == "V1-DEFAULT"

    def test_inactive_user_cannot_login(self, client, admin_headers, create_member):
        created = create_member(name="Ibrahim", phone="699000000", password="secret1")
        client.put(f"/api/members/{created['id']}/deactivate", headers=admin_headers)
        res = client.post("/api/auth/login", json={"phone": "699000000", "password": "secret1"})
        assert res.status_code == 401


class TestResolver:
    def test_missing_header_is_401(self, client):
        res = client.get("/api/members")
        assert res.status_code == 401
        assert res.get_json() == {"error": "Token manquant"}

    def test_garbage_token_is_403(self, client):
        res = client.get("/api/members", headers=bearer("not.a.jwt"))
        assert res.status_code == 403
        assert res.get_json() == {"error": "Token invalide"}

    def test_expired_token_is_403(self, client, admin_token):
        user_id = jwt.decode(admin_token, JWT_SECRET, algorithms=["HS256"], audience="tenant")["userId"]
        res = client.get("/api/members", headers=bearer(_tenant_token({"userId": user_id}, days=-1)))
        assert res.status_code == 403

    def test_wrong_secret_is_403(self, client, admin_token):
        user_id = jwt.decode(admin_token, JWT_SECRET, algorithms=["HS256"], audience="tenant")["userId"]
        token = _tenant_token({"userId": user_id}, secret="another-secret-of-sufficient-length-000000")
        assert client.get("/api/members", headers=bearer(token)).status_code == 403

    def test_unknown_db_name_is_404_and_not_cached(self, client, registry, admin_token):
        user_id = jwt.decode(admin_token, JWT_SECRET, algorithms=["HS256"], audience="tenant")["userId"]
        token = _tenant_token({"userId": user_id, "dbName": "assoc_ghost_1.db"})
        res = client.get("/api/members", headers=bearer(token))
        assert res.status_code == 404
        assert res.get_json() == {"error": "Base de données introuvable"}
        assert "assoc_ghost_1.db" not in registry

    def test_deactivated_user_token_is_401(self, client, admin_headers, create_member):
        created = create_member(name="Kofi", phone="611000000", password="secret1")
        token = client.post("/api/auth/login", json={"phone": "611000000", "password": "secret1"}).get_json()["token"]
        client.put(f"/api/members/{created['id']}/deactivate", headers=admin_headers)
        res = client.get("/api/years", headers=bearer(token))
        assert res.status_code == 401
        assert res.get_json() == {"error": "Utilisateur inactif ou introuvable"}

    def test_member_cannot_use_admin_routes(self, client, create_member):
        created = create_member(name="Ama", phone="622000000")
        token = client.post("/api/auth/login", json={"accessToken": created["token"]}).get_json()["token"]
        res = client.post("/api/years", json={"year": 2025, "monthlyAmount": 1000}, headers=bearer(token))
        assert res.status_code == 403
        assert res.get_json() == {"error": "Accès réservé aux administrateurs"}


class TestTokenSeparation:
    """Un jeton plateforme n'ouvre pas le tenant, et inversement."""

    def test_platform_token_rejected_on_tenant_routes(self, client, platform_headers):
        assert client.get("/api/members", headers=platform_headers).status_code == 403
        assert client.get("/api/auth/me", headers=platform_headers).status_code == 403

    def test_tenant_token_rejected_on_platform_routes(self, client, admin_headers):
        assert client.get("/api/platform/me", headers=admin_headers).status_code == 403
        assert client.get("/api/platform/associations", headers=admin_headers).status_code == 403

    def test_platform_routes_require_token(self, client):
        res = client.get("/api/platform/associations")
        assert res.status_code == 401
        assert res.get_json() == {"error": "Token requis"}


class TestTenantIsolation:
    def test_token_for_tenant_b_never_reads_tenant_a(self, client, admin_headers, admin_token,
                                                     platform_headers, create_member):
        create_member(name="Seulement A", phone="633000000")
        res = client.post("/api/platform/associations", json={
            "name": "Association B", "code": "ASSO-B",
            "adminEmail": "admin@b.org", "adminPassword": "passb",
        }, headers=platform_headers)
        assert res.status_code == 201
        db_name = res.get_json()["dbName"]

        login = client.post("/api/auth/login", json={
            "associationCode": "ASSO-B", "identifier": "admin@b.org", "password": "passb",
        })
        assert login.status_code == 200
        b_headers = bearer(login.get_json()["token"])

        assert client.get("/api/members", headers=b_headers).get_json() == []
        names_a = [m["name"] for m in client.get("/api/members", headers=admin_headers).get_json()]
        assert names_a == ["Seulement A"]

        # tenant A's admin id carried into tenant B's database
        a_user_id = jwt.decode(admin_token, JWT_SECRET, algorithms=["HS256"], audience="tenant")["userId"]
        forged = _tenant_token({"userId": a_user_id, "dbName": db_name})
        assert client.get("/api/members", headers=bearer(forged)).status_code == 401
