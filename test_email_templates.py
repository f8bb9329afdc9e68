"""Rendering checks for the notification emails and the registry they read from."""
from datetime import date

import pytest

from email_templates import (
    format_date,
    generate_dropoff_ical,
    render_cancellation_notice_email,
    render_confirmation_email,
    render_courier_summary_email,
    render_new_signup_notification_email,
)
from locations import ALLOWED_DATES, LOCATIONS, LOCATION_KEYS, get_location_display_text

COURIER = {"name": "Casey", "phone": "(503) 555-0100", "email": "casey@example.com"}


def test_registry_is_read_only():
    assert set(LOCATION_KEYS) == {"Portland", "I5 Corridor", "Salem", "Eugene"}
    with pytest.raises(TypeError):
        LOCATIONS["Bend"] = LOCATIONS["Salem"]
    assert ALLOWED_DATES[0] == date(2025, 12, 6)


def test_location_display_text():
    assert get_location_display_text("Salem") == "Public Service Building - 255 Capitol St NE, Salem, OR 97310"
    assert get_location_display_text("Eugene").endswith("(No courier needed)")
    assert get_location_display_text("Nowhere") == "Nowhere"


def test_format_date():
    assert format_date(date(2025, 12, 6)) == "December 6, 2025"
    assert format_date("2025-12-21") == "December 21, 2025"
    assert format_date("not a date") == "not a date"


def test_confirmation_email_contents():
    html = render_confirmation_email(
        "Jane", date(2025, 12, 6), "Salem", "Lasagna", True,
        "https://meals.test/cancel/abc", [COURIER],
    )
    assert "December 6, 2025" in html
    assert "255 Capitol St NE<br>Salem, OR 97310" in html
    assert "Freezer Friendly:</strong> Yes" in html
    assert 'href="https://meals.test/cancel/abc"' in html
    assert "Courier Contact:" in html
    assert "casey@example.com" in html


def test_provider_text_is_escaped():
    html = render_new_signup_notification_email(
        "<script>alert(1)</script>", "(503) 555-1234", "Mac & cheese", False, True,
        "<b>ring bell</b>", date(2025, 12, 6), "Salem", 3,
    )
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "Mac &amp; cheese" in html
    assert "&lt;b&gt;ring bell&lt;/b&gt;" in html
    assert "Total meals for Salem on December 6, 2025:</strong> 3" in html


@pytest.mark.parametrize("remaining, expected", [
    (0, "0 meals remaining"),
    (1, "1 meal remaining"),
    (2, "2 meals remaining"),
])
def test_cancellation_notice_pluralizes(remaining, expected):
    html = render_cancellation_notice_email("Jane", "Soup", date(2025, 12, 7), "Portland", remaining)
    assert expected in html


def test_courier_summary_numbers_each_meal():
    meals = [
        {"name": "A", "phone": "1", "meal_description": "Soup", "freezer_friendly": True,
         "can_bring_to_salem": False, "note_to_courier": None},
        {"name": "B", "phone": "2", "meal_description": "Stew", "freezer_friendly": False,
         "can_bring_to_salem": True, "note_to_courier": "Porch"},
    ]
    html = render_courier_summary_email("Portland", date(2025, 12, 13), meals)
    assert "Total Meals to Pick Up:</strong> 2" in html
    assert "Meal 1 of 2" in html and "Meal 2 of 2" in html
    assert html.count("Note from Provider") == 1


def test_dropoff_ical_is_all_day_event():
    data = generate_dropoff_ical(date(2025, 12, 6), "Salem", "Lasagna", "https://meals.test/cancel/abc")
    text = data.decode("utf-8")
    assert "BEGIN:VEVENT" in text
    assert "DTSTART;VALUE=DATE:20251206" in text
    assert "DTEND;VALUE=DATE:20251207" in text
    assert "Meal drop-off - Salem" in text
