# test_order_settlement_e2e.py
import pytest
from fastapi.testclient import TestClient

from drinkpos.main import app
from drinkpos.services import membership


def jprint(step, r):
    """Helper to assert on failure and return the JSON body."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json()


def get_member(client, headers, member_id):
    return jprint("GET /members/{id}", client.get(f"/members/{member_id}", headers=headers))


def test_requires_session_token(client, bootstrap):
    r = client.post("/orders/", json={"payment_method": "BANK_TRANSFER", "items": [{"menu_id": "x", "quantity": 1}]})
    assert r.status_code == 401
    r = client.get("/orders/", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401


def test_totals_from_catalog_prices_and_toppings(client, auth_headers, catalog):
    menu, tops = catalog["menu"], catalog["toppings"]
    items = [
        {"menu_id": menu["Thai Milk Tea"]["id"], "quantity": 2, "sweetness": "FIFTY",
         "topping_ids": [tops["Pearls"]["id"], tops["Whipped Cream"]["id"]]},     # (40+10+15)*2
        {"menu_id": menu["Iced Latte"]["id"], "quantity": 1, "note": "less ice"},  # 55
    ]
    r = client.post("/orders/", headers=auth_headers, json={
        "payment_method": "CASH", "amount_received": 200, "items": items,
    })
    o = jprint("POST /orders/", r)

    assert o["status"] == "COMPLETED"
    assert o["subtotal"] == 185.0
    assert o["discount_amount"] == 0.0
    assert o["total_price"] == 185.0
    assert o["amount_received"] == 200.0
    assert o["change"] == 15.0
    assert o["points_earned"] == 0          # no member
    assert sum(i["line_total"] for i in o["items"]) == o["subtotal"]

    tea = next(i for i in o["items"] if i["menu_id"] == menu["Thai Milk Tea"]["id"])
    assert tea["unit_price"] == 65.0
    assert tea["sweetness"] == "FIFTY"
    assert {t["name"] for t in tea["toppings"]} == {"Pearls", "Whipped Cream"}
    assert tea["category_name"] == "Tea"

    fetched = jprint("GET /orders/{id}", client.get(f"/orders/{o['id']}", headers=auth_headers))
    assert fetched["total_price"] == 185.0
    assert len(fetched["items"]) == 2


def test_bank_transfer_records_exact_amount(place_order):
    o = place_order(glasses=2, payment_method="BANK_TRANSFER", amount_received=None)
    assert o["payment_method"] == "BANK_TRANSFER"
    assert o["amount_received"] == o["total_price"] == 80.0
    assert o["change"] == 0.0


def test_cash_must_cover_total(client, auth_headers, catalog):
    items = [{"menu_id": catalog["menu"]["Mocha"]["id"], "quantity": 2}]
    r = client.post("/orders/", headers=auth_headers, json={
        "payment_method": "CASH", "amount_received": 100, "items": items,
    })
    assert r.status_code == 400
    r = client.post("/orders/", headers=auth_headers, json={"payment_method": "CASH", "items": items})
    assert r.status_code == 400


def test_member_crosses_into_silver(client, auth_headers, make_member, place_order):
    m = make_member()
    place_order(member_id=m["id"], glasses=8)
    m = get_member(client, auth_headers, m["id"])
    assert m["tier"] == "BRONZE"
    assert m["points"] == 8

    o = place_order(member_id=m["id"], glasses=3)
    assert o["points_earned"] == 3
    assert o["member"]["tier"] == "SILVER"
    m = get_member(client, auth_headers, m["id"])
    assert m["tier"] == "SILVER"
    assert m["points"] == 11


def test_tier_discount_applies_to_subtotal(client, auth_headers, make_member, place_order):
    m = make_member()
    place_order(member_id=m["id"], glasses=10)                 # now SILVER
    o = place_order(member_id=m["id"], glasses=3)              # 120 * 5% = 6
    assert o["subtotal"] == 120.0
    assert o["tier_discount"] == 6.0
    assert o["total_price"] == 114.0
    assert o["total_price"] == o["subtotal"] - o["tier_discount"] - o["points_discount"]


def test_redeem_points(client, auth_headers, make_member, place_order):
    m = make_member(points=200)
    # 2 x 40 = 80 -> cap min(200, floor(80 / 2.5)) = 30
    disc = jprint("GET /members/{id}/discount",
                  client.get(f"/members/{m['id']}/discount", params={"subtotal": 80}, headers=auth_headers))
    assert disc["tier"] == "BRONZE"
    assert disc["max_redeemable_points"] == 30

    r = place_order(member_id=m["id"], glasses=2, points_used=40, expect_ok=False)
    assert r.status_code == 409
    r = place_order(member_id=m["id"], glasses=2, points_used=15, expect_ok=False)
    assert r.status_code == 400
    assert get_member(client, auth_headers, m["id"])["points"] == 200

    o = place_order(member_id=m["id"], glasses=2, points_used=30)
    assert o["points_used"] == 30
    assert o["points_discount"] == 75.0
    assert o["total_price"] == 5.0
    assert o["points_earned"] == 0          # 75 baht covers 3 glasses' worth
    assert get_member(client, auth_headers, m["id"])["points"] == 170


def test_points_need_a_member(place_order):
    r = place_order(glasses=2, points_used=10, expect_ok=False)
    assert r.status_code == 400


def test_quote_matches_settlement(client, auth_headers, catalog, make_member, place_order):
    m = make_member(points=120)
    place_order(member_id=m["id"], glasses=10)                 # SILVER, 130 points
    items = [{"menu_id": catalog["menu"]["Mango Smoothie"]["id"], "quantity": 4,
              "topping_ids": [catalog["toppings"]["Jelly"]["id"]]}]
    q = jprint("POST /cart/quote", client.post("/cart/quote", headers=auth_headers, json={
        "member_id": m["id"], "items": items, "points_used": 50,
    }))
    assert q["subtotal"] == 300.0
    assert q["tier"] == "SILVER"
    assert q["tier_discount"] == 15.0
    assert q["points_discount"] == 125.0
    assert q["total"] == 160.0
    assert q["points_earned"] == 0

    o = place_order(member_id=m["id"], items=items, points_used=50,
                    total_price=q["total"], discount_amount=q["discount_amount"],
                    points_earned=q["points_earned"])
    assert o["total_price"] == q["total"]
    assert o["discount_amount"] == q["discount_amount"]


def test_tampered_totals_are_rejected_without_side_effects(client, auth_headers, make_member, place_order):
    m = make_member(points=50)
    r = place_order(member_id=m["id"], glasses=3, total_price=1.0, expect_ok=False)
    assert r.status_code == 400
    r = place_order(member_id=m["id"], glasses=3, points_earned=30, expect_ok=False)
    assert r.status_code == 400
    after = get_member(client, auth_headers, m["id"])
    assert after["points"] == 50
    orders = jprint("GET /members/{id}/orders", client.get(f"/members/{m['id']}/orders", headers=auth_headers))
    assert orders == []


def test_cancel_after_completion_restores_points_and_tier(client, auth_headers, make_member, place_order):
    m = make_member(points=50)
    place_order(member_id=m["id"], glasses=7)                  # 57 points, 7 glasses
    o = place_order(member_id=m["id"], glasses=5)              # 62 points, 12 glasses
    assert get_member(client, auth_headers, m["id"])["tier"] == "SILVER"

    r = client.post(f"/orders/{o['id']}/status", headers=auth_headers,
                    json={"status": "CANCELLED", "note": "customer refund"})
    cancelled = jprint("POST /orders/{id}/status", r)
    assert cancelled["status"] == "CANCELLED"
    assert cancelled["note"] == "customer refund"

    after = get_member(client, auth_headers, m["id"])
    assert after["points"] == 57
    assert after["tier"] == "BRONZE"

    # a second cancellation must not reverse points again
    r = client.post(f"/orders/{o['id']}/status", headers=auth_headers, json={"status": "CANCELLED"})
    assert r.status_code == 409
    assert get_member(client, auth_headers, m["id"])["points"] == 57


def test_cancel_restores_redeemed_points(client, auth_headers, make_member, place_order):
    m = make_member(points=100)
    o = place_order(member_id=m["id"], glasses=4, points_used=20)   # 160 -> cap 60
    assert o["points_earned"] == 2
    assert get_member(client, auth_headers, m["id"])["points"] == 82

    jprint("POST /orders/{id}/status", client.post(
        f"/orders/{o['id']}/status", headers=auth_headers, json={"status": "CANCELLED"}))
    assert get_member(client, auth_headers, m["id"])["points"] == 100


def test_order_state_machine(client, auth_headers, make_member, place_order):
    m = make_member()
    place_order(member_id=m["id"], glasses=9)
    o = place_order(member_id=m["id"], glasses=1, status="PENDING")
    assert o["status"] == "PENDING"
    # pending glasses do not count toward the tier yet
    assert get_member(client, auth_headers, m["id"])["tier"] == "BRONZE"

    def move(status):
        return client.post(f"/orders/{o['id']}/status", headers=auth_headers, json={"status": status})

    assert move("COMPLETED").status_code == 409                 # must pass through PROCESSING
    assert jprint("PROCESSING", move("PROCESSING"))["status"] == "PROCESSING"
    assert move("PROCESSING").status_code == 409
    assert jprint("COMPLETED", move("COMPLETED"))["status"] == "COMPLETED"
    assert get_member(client, auth_headers, m["id"])["tier"] == "SILVER"

    assert jprint("CANCELLED", move("CANCELLED"))["status"] == "CANCELLED"
    for status in ("PENDING", "PROCESSING", "COMPLETED", "CANCELLED"):
        assert move(status).status_code == 409
    assert get_member(client, auth_headers, m["id"])["tier"] == "BRONZE"


def test_pending_order_can_be_cancelled(client, auth_headers, place_order):
    o = place_order(glasses=1, status="PENDING")
    r = client.post(f"/orders/{o['id']}/status", headers=auth_headers, json={"status": "CANCELLED"})
    assert jprint("cancel pending", r)["status"] == "CANCELLED"


@pytest.mark.parametrize("field", ["menu", "topping", "member"])
def test_unknown_references_are_not_found(client, auth_headers, catalog, field):
    item = {"menu_id": catalog["menu"]["Lemon Tea"]["id"], "quantity": 1}
    body = {"payment_method": "CASH", "amount_received": 100, "items": [item]}
    if field == "menu":
        item["menu_id"] = "does-not-exist"
    elif field == "topping":
        item["topping_ids"] = ["does-not-exist"]
    else:
        body["member_id"] = "does-not-exist"
    r = client.post("/orders/", headers=auth_headers, json=body)
    assert r.status_code == 404, r.text


def test_unavailable_menu_item_is_refused(client, auth_headers, catalog, rng_suffix):
    cat_id = catalog["menu"]["Lemon Tea"]["category_id"]
    m = jprint("POST /catalog/menu", client.post("/catalog/menu", headers=auth_headers, json={
        "name": f"Seasonal-{rng_suffix}", "category_id": cat_id, "price": 70,
    }))
    jprint("availability", client.post(f"/catalog/menu/{m['id']}/availability",
                                       params={"available": False}, headers=auth_headers))
    r = client.post("/orders/", headers=auth_headers, json={
        "payment_method": "CASH", "amount_received": 100, "items": [{"menu_id": m["id"], "quantity": 1}],
    })
    assert r.status_code == 409


def test_duplicate_member_phone_conflicts(client, auth_headers, make_member):
    m = make_member()
    r = client.post("/members/", headers=auth_headers, json={"name": "Again", "phone": m["phone"]})
    assert r.status_code == 409
    found = jprint("GET /members/lookup", client.get("/members/lookup", params={"phone": m["phone"]},
                                                     headers=auth_headers))
    assert found["id"] == m["id"]


def test_list_orders_filters_by_status(client, auth_headers, place_order):
    o = place_order(glasses=1, status="PENDING")
    page = jprint("GET /orders/", client.get("/orders/", params={"status": "PENDING", "size": 100},
                                             headers=auth_headers))
    assert o["id"] in {i["id"] for i in page["items"]}
    assert all(i["status"] == "PENDING" for i in page["items"])
    assert client.get("/orders/", params={"status": "NOPE"}, headers=auth_headers).status_code == 400


def test_failure_after_order_rows_rolls_everything_back(client, auth_headers, catalog, make_member, monkeypatch):
    m = make_member(points=50)

    def explode(db, member):
        raise RuntimeError("tier store unavailable")

    # fails after the order, its lines and the points change are flushed
    monkeypatch.setattr(membership, "refresh_tier", explode)
    with TestClient(app, raise_server_exceptions=False) as raw:
        r = raw.post("/orders/", headers=auth_headers, json={
            "member_id": m["id"], "payment_method": "CASH", "amount_received": 1000,
            "items": [{"menu_id": catalog["menu"]["Thai Milk Tea"]["id"], "quantity": 4}],
        })
    assert r.status_code == 500
    monkeypatch.undo()

    assert get_member(client, auth_headers, m["id"])["points"] == 50
    orders = jprint("GET /members/{id}/orders", client.get(f"/members/{m['id']}/orders", headers=auth_headers))
    assert orders == []


def test_redemption_history_lists_orders_that_spent_points(client, auth_headers, make_member, place_order):
    m = make_member(points=100)
    place_order(member_id=m["id"], glasses=2)
    spent = place_order(member_id=m["id"], glasses=4, points_used=20)
    assert get_member(client, auth_headers, m["id"])["points"] == 100 + 2 - 20 + 2

    rows = jprint("GET /members/{id}/redemptions",
                  client.get(f"/members/{m['id']}/redemptions", headers=auth_headers))
    assert [o["id"] for o in rows] == [spent["id"]]
    assert rows[0]["points_used"] == 20
    assert rows[0]["items"][0]["menu_name"] == "Thai Milk Tea"

    assert client.get("/members/nobody/redemptions", headers=auth_headers).status_code == 404


def test_missing_records_share_the_not_found_shape(client, auth_headers):
    checks = [
        client.get("/orders/nope", headers=auth_headers),
        client.get("/catalog/menu/nope", headers=auth_headers),
        client.post("/catalog/menu/nope/availability", params={"available": True}, headers=auth_headers),
        client.post("/catalog/toppings/nope/availability", params={"available": True}, headers=auth_headers),
        client.post("/catalog/menu", headers=auth_headers, json={"name": "x", "category_id": "nope", "price": 1}),
    ]
    for r in checks:
        assert r.status_code == 404, r.text
        assert r.json()["detail"].endswith("not found")
    r = client.get("/orders/", params={"status": "NOPE"}, headers=auth_headers)
    assert r.json() == {"detail": "invalid status"}
