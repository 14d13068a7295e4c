"""
Fixtures partagées.

Chaque test reçoit sa propre application (DATA_DIR temporaire, base par
défaut seedée, SUPER_ADMIN créé) ou un registre isolé pour les tests de la
couche de données.
"""

import pytest

from assocmanager import create_app
from assocmanager.models import ROLE_MEMBER, db
from assocmanager.registry import TenantRegistry

JWT_SECRET = "test-secret-assocmanager-0123456789-abcdefghijklmnop"
ADMIN_EMAIL = "admin@assocmanager.local"
ADMIN_PASSWORD = "admin"
SUPERADMIN_EMAIL = "superadmin@platform.local"
SUPERADMIN_PASSWORD = "superadmin"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# APPLICATION
# =============================================================================

@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "DATA_DIR": str(tmp_path / "data"),
        "JWT_SECRET": JWT_SECRET,
        "BCRYPT_ROUNDS": 4,
        "SEED_ON_STARTUP": True,
        "LOG_LEVEL": "WARNING",
        "ADMIN_EMAIL": ADMIN_EMAIL,
        "ADMIN_PASSWORD": ADMIN_PASSWORD,
        "SUPERADMIN_EMAIL": SUPERADMIN_EMAIL,
        "SUPERADMIN_PASSWORD": SUPERADMIN_PASSWORD,
    })
    yield app
    app.extensions["tenant_registry"].dispose_all()
    with app.app_context():
        db.session.remove()
        for engine in db.engines.values():
            engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def registry(app):
    return app.extensions["tenant_registry"]


@pytest.fixture
def admin_token(client):
    res = client.post("/api/auth/login", json={"identifier": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 200, res.get_json()
    return res.get_json()["token"]


@pytest.fixture
def admin_headers(admin_token):
    return bearer(admin_token)


@pytest.fixture
def platform_headers(client):
    res = client.post("/api/platform/login",
                      json={"email": SUPERADMIN_EMAIL, "password": SUPERADMIN_PASSWORD})
    assert res.status_code == 200, res.get_json()
    return bearer(res.get_json()["token"])


@pytest.fixture
def default_tenant(registry):
    """Client direct sur la base par défaut, hors requête HTTP et hors contexte applicatif."""
    tenant = registry.default().client()
    yield tenant
    tenant.close()


@pytest.fixture
def create_member(client, admin_headers):
    def _create(name="Awa Diallo", custom="Villa 12", phone=None, email=None, password=None):
        body = {"name": name, "customFieldValue": custom}
        if phone:
            body["phone"] = phone
        if email:
            body["email"] = email
        if password:
            body["password"] = password
        if not phone and not email:
            body["email"] = f"{name.lower().replace(' ', '.')}@example.com"
        res = client.post("/api/members", json=body, headers=admin_headers)
        assert res.status_code == 201, res.get_json()
        return res.get_json()
    return _create


@pytest.fixture
def create_year(client, admin_headers):
    def _create(year=2025, monthly_amount=5000, active=True):
        res = client.post("/api/years", json={"year": year, "monthlyAmount": monthly_amount, "active": active},
                          headers=admin_headers)
        assert res.status_code == 201, res.get_json()
        return res.get_json()
    return _create


# =============================================================================
# DATA LAYER (sans Flask)
# =============================================================================

@pytest.fixture
def standalone_registry(tmp_path):
    registry = TenantRegistry(str(tmp_path / "tenants"), "default.db")
    yield registry
    registry.dispose_all()


@pytest.fixture
def tenant_client(standalone_registry):
    handle = standalone_registry.create("tenant_a.db")
    client = handle.client()
    yield client
    client.close()


@pytest.fixture
def make_user():
    counter = {"n": 0}

    def _make(repo_owner, email=None, role=ROLE_MEMBER, **fields):
        counter["n"] += 1
        return repo_owner.users.create(
            email=email or f"user{counter['n']}@example.com",
            password_hash="not-a-real-hash",
            role=role,
            active=True,
            **fields,
        )
    return _make

