"""
HTML bodies for every email the app sends.

All functions are pure: they take plain values (dates, strings, dicts of
courier/meal fields) and return an HTML string, so they can be rendered inside
a request and delivered later from a background job. Anything a provider typed
is escaped with markupsafe before it is interpolated.
"""
from datetime import date, timedelta

from icalendar import Calendar, Event
from markupsafe import Markup, escape

from locations import get_location_info

TEAM_SIGNATURE = "- The Meals for Raquel Team"

BASE_STYLE = """
        body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
        .container { max-width: 600px; margin: 0 auto; padding: 20px; }
        h2 { color: %(heading)s; }
        .info-box { background: %(box)s; padding: 15px; border-radius: 8px; margin: 15px 0; %(box_border)s }
        .highlight { background: #fef3c7; padding: 10px; border-left: 4px solid #f59e0b; margin: 15px 0; }
        .update-box { background: #f3f4f6; padding: 15px; border-radius: 8px; margin: 15px 0; }
        .courier-info { background: #e0f2fe; padding: 15px; border-radius: 8px; margin: 15px 0; }
        .meal-card { background: #f9fafb; padding: 15px; border-radius: 8px; margin: 15px 0; border: 1px solid #e5e7eb; }
        .note { background: #fef3c7; padding: 10px; border-radius: 4px; margin-top: 10px; }
        .cancel-link { color: #dc2626; }
"""


def format_date(value) -> str:
    """December 6, 2025. Accepts a date or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value.split("T")[0])
        except ValueError:
            return value
    return f"{value:%B} {value.day}, {value.year}"


def yes_no(flag) -> str:
    return "Yes" if flag else "No"


def _page(body, heading="#2563eb", box="#f3f4f6", box_border=""):
    style = BASE_STYLE % {"heading": heading, "box": box, "box_border": box_border}
    return f"""<!DOCTYPE html>
<html>
<head>
    <style>{style}    </style>
</head>
<body>
    <div class="container">
{body}
    </div>
</body>
</html>
"""


def _address_block(location):
    info = get_location_info(location)
    if not info:
        return f"<p><strong>Location:</strong> {escape(location)}</p>"
    address = Markup("<br>").join(escape(line) for line in info.full_address.split("\n"))
    html = f"<p><strong>Location:</strong> {escape(location)}</p>\n"
    html += f"<p><strong>Address:</strong><br>{address}</p>"
    if info.note:
        html += f"\n<p><em>{escape(info.note)}</em></p>"
    return html


def _courier_lines(couriers):
    return "\n".join(
        f'<p><strong>{escape(c["name"])}:</strong> {escape(c["phone"])} '
        f'(<a href="mailto:{escape(c["email"])}">{escape(c["email"])}</a>)</p>'
        for c in couriers
    )


def _provider_note(note):
    if not note:
        return ""
    return f'<div class="note"><strong>Note from Provider:</strong> {escape(note)}</div>'


def render_confirmation_email(name, pickup_date, location, meal_description,
                              freezer_friendly, cancellation_url, couriers):
    plural = "s" if len(couriers) > 1 else ""
    body = f"""
        <h2>Thank you for coordinating a meal, {escape(name)}!</h2>
        <p>Your meal drop-off has been confirmed:</p>

        <div class="info-box">
            <p><strong>Date:</strong> {format_date(pickup_date)}</p>
            {_address_block(location)}
            <p><strong>Meal:</strong> {escape(meal_description)}</p>
            <p><strong>Freezer Friendly:</strong> {yes_no(freezer_friendly)}</p>
        </div>

        <div class="highlight">
            <p><strong>The courier will follow up to set a specific time to meet at the chosen location.</strong></p>
        </div>

        <p>If you need to cancel, <a href="{escape(cancellation_url)}" class="cancel-link">click here to cancel your meal signup</a>.</p>

        <div class="courier-info">
            <h3>Courier Contact{plural}:</h3>
            {_courier_lines(couriers)}
        </div>

        <p>Thank you for your generosity!</p>
        <p>{TEAM_SIGNATURE}</p>"""
    return _page(body)


def render_reminder_email(name, pickup_date, location, meal_description, couriers):
    body = f"""
        <h2>Reminder: Meal Drop-off Tomorrow!</h2>
        <p>Hi {escape(name)},</p>
        <p>This is a friendly reminder that you're scheduled to drop off a meal tomorrow.</p>

        <div class="info-box">
            <p><strong>Date:</strong> {format_date(pickup_date)}</p>
            {_address_block(location)}
            <p><strong>Your Meal:</strong> {escape(meal_description)}</p>
        </div>

        <div class="highlight">
            <p><strong>The courier will follow up to set a specific time to meet at the chosen location.</strong></p>
        </div>

        <div class="courier-info">
            <h3>Need to reach a courier?</h3>
            {_courier_lines(couriers)}
        </div>

        <p>Thank you for your generosity!</p>
        <p>{TEAM_SIGNATURE}</p>"""
    return _page(body)


def render_courier_summary_email(location, pickup_date, meals):
    """Day-before rundown for a courier: one card per active meal."""
    total = len(meals)
    cards = []
    for i, meal in enumerate(meals, start=1):
        cards.append(f"""
        <div class="meal-card">
            <h3>Meal {i} of {total}</h3>
            <p><strong>From:</strong> {escape(meal["name"])}</p>
            <p><strong>Phone:</strong> {escape(meal["phone"])}</p>
            <p><strong>Meal:</strong> {escape(meal["meal_description"])}</p>
            <p><strong>Freezer Friendly:</strong> {yes_no(meal["freezer_friendly"])}</p>
            <p><strong>Can Bring to Salem:</strong> {yes_no(meal["can_bring_to_salem"])}</p>
            {_provider_note(meal.get("note_to_courier"))}
        </div>""")
    cards_html = "".join(cards)

    body = f"""
        <h2>Meal Pickup Summary - {escape(location)}</h2>
        <p><strong>Date:</strong> {format_date(pickup_date)}</p>

        <div class="info-box">
            <p><strong>Total Meals to Pick Up:</strong> {total}</p>
        </div>
        {cards_html}

        <hr>
        <p>Please ensure all meals are picked up by 2:00 PM.</p>
        <p>{TEAM_SIGNATURE}</p>"""
    return _page(body, box="#f0fdf4", box_border="border-left: 4px solid #22c55e;")


def render_new_signup_notification_email(provider_name, provider_phone, meal_description,
                                         freezer_friendly, can_bring_to_salem, note_to_courier,
                                         pickup_date, location, total_meals_count):
    when = format_date(pickup_date)
    body = f"""
        <h2>New Meal Signup!</h2>
        <p>A new meal has been added to your pickup route.</p>

        <div class="info-box">
            <p><strong>From:</strong> {escape(provider_name)}</p>
            <p><strong>Phone:</strong> {escape(provider_phone)}</p>
            <p><strong>Meal:</strong> {escape(meal_description)}</p>
            <p><strong>Freezer Friendly:</strong> {yes_no(freezer_friendly)}</p>
            <p><strong>Can Bring to Salem:</strong> {yes_no(can_bring_to_salem)}</p>
            <p><strong>Date:</strong> {when}</p>
            <p><strong>Location:</strong> {escape(location)}</p>
            {_provider_note(note_to_courier)}
        </div>

        <div class="update-box">
            <p><strong>Total meals for {escape(location)} on {when}:</strong> {total_meals_count}</p>
        </div>

        <p>{TEAM_SIGNATURE}</p>"""
    return _page(body, heading="#22c55e", box="#f0fdf4", box_border="border-left: 4px solid #22c55e;")


def render_cancellation_notice_email(provider_name, meal_description, pickup_date, location,
                                     remaining_count):
    when = format_date(pickup_date)
    plural = "" if remaining_count == 1 else "s"
    body = f"""
        <h2>Meal Cancellation Notice</h2>
        <p>A meal has been cancelled for your pickup route.</p>

        <div class="info-box">
            <p><strong>Cancelled by:</strong> {escape(provider_name)}</p>
            <p><strong>Meal:</strong> {escape(meal_description)}</p>
            <p><strong>Date:</strong> {when}</p>
            <p><strong>Location:</strong> {escape(location)}</p>
        </div>

        <div class="update-box">
            <p><strong>Updated count:</strong> {remaining_count} meal{plural} remaining for {escape(location)} on {when}.</p>
        </div>

        <p>{TEAM_SIGNATURE}</p>"""
    return _page(body, heading="#dc2626", box="#fef2f2", box_border="border-left: 4px solid #dc2626;")


def render_cancellation_confirmation_email(name, meal_description, pickup_date, location):
    body = f"""
        <h2>Meal Cancellation Confirmed</h2>
        <p>Hi {escape(name)},</p>
        <p>Your meal signup has been successfully cancelled.</p>

        <div class="info-box">
            <p><strong>Cancelled Meal:</strong> {escape(meal_description)}</p>
            <p><strong>Date:</strong> {format_date(pickup_date)}</p>
            <p><strong>Location:</strong> {escape(location)}</p>
        </div>

        <p>If you'd like to sign up for a different date, please visit our signup page.</p>

        <p>Thank you,</p>
        <p>{TEAM_SIGNATURE}</p>"""
    return _page(body)


def generate_dropoff_ical(pickup_date, location, meal_description, cancellation_url=None):
    """All-day calendar event for the drop-off, attached to the confirmation email."""
    info = get_location_info(location)

    cal = Calendar()
    cal.add('prodid', '-//Meals for Raquel//Meal Drop-off//EN')
    cal.add('version', '2.0')
    cal.add('method', 'PUBLISH')

    event = Event()
    event.add('summary', f"Meal drop-off - {location}")
    description = f"Meal: {meal_description}\n\nThe courier will follow up to set a specific time."
    if cancellation_url:
        description += f"\n\nNeed to cancel? {cancellation_url}"
    event.add('description', description)
    event.add('dtstart', pickup_date)
    event.add('dtend', pickup_date + timedelta(days=1))
    event.add('location', info.full_address.replace("\n", ", ") if info else location)
    cal.add_component(event)
    return cal.to_ical()
