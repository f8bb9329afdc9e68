"""
Token-based cancellation: lookup, cancel once, notify couriers and the provider.
"""
import pytest

import app as meal_app
from app import db, MealSignup
from conftest import signup_payload
from errors import NotFoundError


@pytest.fixture
def signup(client, make_pickup, make_courier):
    pickup = make_pickup("Portland")
    make_courier(name="Pat", email="pat@example.com", locations=["Portland"])
    make_courier(name="Quinn", email="quinn@example.com", locations=["Salem"])
    response = client.post("/api/meals", json=signup_payload(pickup.id))
    return db.session.get(MealSignup, response.get_json()["mealId"])


def test_cancellation_summary(client, signup):
    response = client.get(f"/api/cancel/{signup.cancellation_token}")
    assert response.status_code == 200
    body = response.get_json()
    assert body["id"] == signup.id
    assert body["mealDescription"] == "Vegetable lasagna"
    assert body["location"] == "Portland"
    assert body["alreadyCancelled"] is False


def test_cancel_once_then_rejected(client, signup, outbox):
    token = signup.cancellation_token

    first = client.post(f"/api/cancel/{token}")
    assert first.status_code == 200
    assert first.get_json() == {"success": True, "message": "Meal cancelled successfully"}

    db.session.expire_all()
    cancelled = db.session.get(MealSignup, signup.id)
    assert cancelled.status == "cancelled"
    cancelled_at = cancelled.cancelled_at
    assert cancelled_at is not None

    second = client.post(f"/api/cancel/{token}")
    assert second.status_code == 400
    assert second.get_json() == {"error": "This meal has already been cancelled"}

    db.session.expire_all()
    assert db.session.get(MealSignup, signup.id).cancelled_at == cancelled_at
    assert client.get(f"/api/cancel/{token}").get_json()["alreadyCancelled"] is True

    # One courier notice and one provider confirmation, from the first cancel only
    assert len(outbox) == 2
    notice = next(m for m in outbox if m.recipients == ["pat@example.com"])
    assert notice.subject.startswith("Meal Cancellation - Portland - ")
    assert "0 meals remaining" in notice.html
    confirmation = next(m for m in outbox if m.recipients == ["jane@example.com"])
    assert confirmation.subject == "Meal Cancellation Confirmed"


def test_cancelled_meal_stays_on_public_list(client, signup):
    client.post(f"/api/cancel/{signup.cancellation_token}")
    portland = client.get("/api/meals").get_json()["Portland"]
    assert [m["cancelled"] for m in portland] == [True]


@pytest.mark.parametrize("token", [
    "does-not-exist",
    "00000000-0000-0000-0000-000000000000",
    "1%27%20OR%20%271%27%3D%271",
])
def test_unknown_token(client, signup, token):
    for method in (client.get, client.post):
        response = method(f"/api/cancel/{token}")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Invalid cancellation link"}
    db.session.expire_all()
    assert db.session.get(MealSignup, signup.id).status == "active"


def test_blank_token_is_not_found(app):
    with pytest.raises(NotFoundError):
        meal_app.cancel_meal_signup("   ")


def test_cancel_notice_counts_remaining_meals(client, make_pickup, make_courier, outbox):
    pickup = make_pickup("Salem")
    make_courier(email="sal@example.com", locations=["Salem"])
    ids = [
        client.post("/api/meals", json=signup_payload(pickup.id, email=f"p{i}@example.com")).get_json()["mealId"]
        for i in range(3)
    ]
    token = db.session.get(MealSignup, ids[0]).cancellation_token
    outbox.clear()

    meal_app.cancel_meal_signup(token)

    notice = next(m for m in outbox if m.recipients == ["sal@example.com"])
    assert "2 meals remaining" in notice.html
