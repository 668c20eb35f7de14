from datetime import datetime, timedelta
from types import SimpleNamespace

from conftest import auth

from coursehub import models
from coursehub.services.promotions import calculate_discount, get_active_promotion


def promo(discount_type="PERCENTAGE", value=20, minimum=None, maximum=None):
    return SimpleNamespace(discount_type=discount_type, discount_value=value,
                           min_purchase_amount=minimum, max_discount_amount=maximum)


def test_percentage_discount():
    assert calculate_discount(100, promo()) == (80.0, 20.0)


def test_percentage_capped_by_max_discount():
    assert calculate_discount(100, promo(maximum=10)) == (90.0, 10.0)


def test_fixed_discount_never_exceeds_price():
    assert calculate_discount(30, promo("FIXED", 50)) == (0.0, 30.0)
    assert calculate_discount(30, promo("FIXED", 5)) == (25.0, 5.0)


def test_min_purchase_gate():
    assert calculate_discount(40, promo(minimum=50)) == (40, 0.0)
    assert calculate_discount(50, promo(minimum=50)) == (40.0, 10.0)


def test_active_lookup_respects_window_and_usage(db):
    now = datetime.utcnow()
    db.add_all([
        models.Promotion(code="LIVE", discount_type="FIXED", discount_value=5,
                         start_date=now - timedelta(days=1), end_date=now + timedelta(days=1)),
        models.Promotion(code="USED", discount_type="FIXED", discount_value=5, usage_limit=2, used_count=2,
                         start_date=now - timedelta(days=1), end_date=now + timedelta(days=1)),
        models.Promotion(code="OFF", discount_type="FIXED", discount_value=5, is_active=False,
                         start_date=now - timedelta(days=1), end_date=now + timedelta(days=1)),
        models.Promotion(code="SOON", discount_type="FIXED", discount_value=5,
                         start_date=now + timedelta(days=1), end_date=now + timedelta(days=2)),
    ])
    db.commit()

    assert get_active_promotion(db, " live ").code == "LIVE"
    assert get_active_promotion(db, "USED") is None
    assert get_active_promotion(db, "OFF") is None
    assert get_active_promotion(db, "SOON") is None
    assert get_active_promotion(db, "LIVE", now=now + timedelta(days=1)) is None


def promotion_body(**overrides):
    now = datetime.utcnow()
    body = {"code": "spring", "discount_type": "PERCENTAGE", "discount_value": 25,
            "start_date": (now - timedelta(hours=1)).isoformat(), "end_date": (now + timedelta(days=7)).isoformat()}
    body.update(overrides)
    return body


def test_admin_crud(client, admin, student):
    headers = auth(admin)
    assert client.post("/promotions", json=promotion_body(), headers=auth(student)).status_code == 403

    created = client.post("/promotions", json=promotion_body(), headers=headers)
    assert created.status_code == 201
    promotion = created.json()
    assert promotion["code"] == "SPRING"
    assert promotion["used_count"] == 0

    assert client.post("/promotions", json=promotion_body(), headers=headers).status_code == 409
    bad_dates = promotion_body(code="x", end_date=promotion_body()["start_date"])
    assert client.post("/promotions", json=bad_dates, headers=headers).status_code == 400
    assert client.post("/promotions", json=promotion_body(code="y", discount_value=150),
                       headers=headers).status_code == 400

    updated = client.put(f"/promotions/{promotion['id']}", json={"discount_value": 30}, headers=headers)
    assert updated.json()["discount_value"] == 30

    assert len(client.get("/promotions", headers=headers).json()) == 1
    assert client.delete(f"/promotions/{promotion['id']}", headers=headers).status_code == 200
    assert client.get(f"/promotions/{promotion['id']}", headers=headers).status_code == 404


def test_blank_code_is_rejected(client, admin):
    headers = auth(admin)
    response = client.post("/promotions", json=promotion_body(code="   "), headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_CODE"

    promotion = client.post("/promotions", json=promotion_body(), headers=headers).json()
    response = client.put(f"/promotions/{promotion['id']}", json={"code": " "}, headers=headers)
    assert response.status_code == 400
    assert client.get(f"/promotions/{promotion['id']}", headers=headers).json()["code"] == "SPRING"


def test_validate_code(client, admin):
    client.post("/promotions", json=promotion_body(max_discount_amount=10), headers=auth(admin))

    response = client.post("/promotions/validate", json={"code": "Spring", "price": 100})
    assert response.status_code == 200
    body = response.json()
    assert body["discounted_price"] == 90.0
    assert body["discount_amount"] == 10.0

    response = client.post("/promotions/validate", json={"code": "NOPE", "price": 100})
    assert response.status_code == 404
    assert response.json()["code"] == "PROMOTION_INVALID"
