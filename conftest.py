# conftest.py
import itertools
import os
import tempfile
import pytest

# settings are read at import time, so configure before importing the app
_TMP = tempfile.mkdtemp(prefix="drinkpos-test-")
os.environ["APP_ENV"] = "dev"
os.environ.setdefault("APP_SECRET", "test-secret-not-for-production")
os.environ["DB_URL"] = f"sqlite:///{_TMP}/drinkpos-test.db"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from drinkpos.main import app  # noqa: E402


def jprint(step, r):
    """Assert a 2xx response and return its JSON body."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json()


@pytest.fixture(scope="session")
def client():
    # entering the context runs the startup hook (create_all)
    with TestClient(app) as c:
        yield c

@pytest.fixture(scope="session")
def bootstrap(client):
    r = client.get("/healthz")
    assert r.status_code == 200, f"/healthz failed: {r.text}"
    return jprint("POST /admin/dev-bootstrap", client.post("/admin/dev-bootstrap"))

@pytest.fixture(scope="session")
def auth_headers(client, bootstrap):
    r = client.post("/auth/login", json={"phone": bootstrap["admin_phone"], "pin": "123456"})
    tok = jprint("POST /auth/login", r)["access_token"]
    return {"Authorization": f"Bearer {tok}"}

@pytest.fixture(scope="session")
def catalog(client, auth_headers):
    """Seeded menu items and toppings keyed by name."""
    menu = jprint("GET /catalog/menu", client.get("/catalog/menu", headers=auth_headers))
    tops = jprint("GET /catalog/toppings", client.get("/catalog/toppings", headers=auth_headers))
    return {
        "menu": {m["name"]: m for m in menu},
        "toppings": {t["name"]: t for t in tops},
    }

@pytest.fixture
def rng_suffix():
    import random, string
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))

_phones = itertools.count(1)

@pytest.fixture
def new_phone():
    def _make():
        return f"08{next(_phones):08d}"
    return _make

@pytest.fixture
def make_member(client, auth_headers, new_phone):
    def _make(points: int = 0, name: str = "Member"):
        r = client.post("/members/", headers=auth_headers,
                        json={"name": name, "phone": new_phone(), "points": points})
        return jprint("POST /members/", r)
    return _make

@pytest.fixture
def make_staff(client, auth_headers, new_phone):
    def _make(role: str = "STAFF", pin: str = "654321"):
        phone = new_phone()
        r = client.post("/admin/staff", headers=auth_headers,
                        json={"name": f"Staff {phone}", "phone": phone, "pin": pin, "role": role})
        staff = jprint("POST /admin/staff", r)
        r = client.post("/auth/login", json={"phone": phone, "pin": pin})
        staff["headers"] = {"Authorization": f"Bearer {jprint('POST /auth/login', r)['access_token']}"}
        return staff
    return _make

@pytest.fixture
def place_order(client, auth_headers, catalog):
    """Cash order of `glasses` x Thai Milk Tea (40 each) unless items are given."""
    def _place(member_id=None, glasses=1, items=None, headers=None, expect_ok=True, **extra):
        if items is None:
            items = [{"menu_id": catalog["menu"]["Thai Milk Tea"]["id"], "quantity": glasses}]
        body = {"payment_method": "CASH", "amount_received": 100000, "items": items,
                "member_id": member_id, **extra}
        r = client.post("/orders/", headers=headers or auth_headers, json=body)
        return jprint("POST /orders/", r) if expect_ok else r
    return _place
