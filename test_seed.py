"""
Seeding the hub x date grid and clearing pickup locations nobody signed up for.
"""
import pytest

import app as meal_app
from app import PickupLocation
from conftest import signup_payload
from errors import ValidationError
from locations import ALLOWED_DATES, LOCATION_KEYS


def test_seed_is_idempotent(app):
    first = meal_app.seed_pickup_locations()
    assert len(first) == len(ALLOWED_DATES) * len(LOCATION_KEYS) == 24
    assert {r["action"] for r in first} == {"created"}

    second = meal_app.seed_pickup_locations()
    assert {r["action"] for r in second} == {"exists"}
    assert PickupLocation.query.count() == 24


def test_seed_keeps_existing_rows(app, make_pickup):
    existing = make_pickup("Salem", pickup_date=ALLOWED_DATES[0], active=False)
    results = meal_app.seed_pickup_locations()
    salem = next(r for r in results if r["location"] == "Salem" and r["pickup_date"] == "2025-12-06")
    assert salem == {"action": "exists", "id": existing.id, "pickup_date": "2025-12-06", "location": "Salem"}
    assert PickupLocation.query.count() == 24


def test_clear_unused_requires_confirmation(app):
    meal_app.seed_pickup_locations()
    with pytest.raises(ValidationError):
        meal_app.delete_unused_pickup_locations()
    assert PickupLocation.query.count() == 24


def test_seed_endpoints(admin_client, monkeypatch):
    monkeypatch.setattr(meal_app, "get_local_today", lambda: ALLOWED_DATES[0])

    seeded = admin_client.post("/api/seed-locations")
    assert seeded.status_code == 200
    assert seeded.get_json()["message"] == "Processed 24 pickup locations"

    listing = admin_client.get("/api/seed-locations").get_json()
    assert listing["count"] == 24
    assert listing["allowedDates"][0] == "2025-12-06"

    used = PickupLocation.query.filter_by(pickup_date=ALLOWED_DATES[0], location="Salem").one()
    assert admin_client.post("/api/meals", json=signup_payload(used.id)).status_code == 200

    refused = admin_client.delete("/api/seed-locations")
    assert refused.status_code == 400
    assert PickupLocation.query.count() == 24

    cleared = admin_client.delete("/api/seed-locations?confirm=yes")
    assert cleared.status_code == 200
    assert cleared.get_json()["message"] == "Deleted 23 pickup locations"
    assert [p.id for p in PickupLocation.query.all()] == [used.id]
