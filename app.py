from datetime import datetime, date, timedelta, timezone
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo
import uuid

import click
from flask import Flask, jsonify, request, session
from flask_sqlalchemy import SQLAlchemy
from flask_mail import Mail, Message
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import generate_password_hash, check_password_hash
from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv

# Load environment variables from .env file BEFORE importing Config so it can read envs
load_dotenv()

from config import Config
from errors import (
    MealSignupError, ValidationError, NotFoundError, ConflictError,
    AuthorizationError, StorageError, NotificationError,
)
from locations import ALLOWED_DATES, LOCATION_KEYS, VALID_LOCATIONS
from validators import is_valid_email, is_valid_phone, format_phone
from email_templates import (
    format_date,
    generate_dropoff_ical,
    render_cancellation_confirmation_email,
    render_cancellation_notice_email,
    render_confirmation_email,
    render_courier_summary_email,
    render_new_signup_notification_email,
    render_reminder_email,
)

app = Flask(__name__)
app.config.from_object(Config)
app.config.setdefault("MAIL_SUPPRESS_SEND", app.testing)
app.logger.setLevel(app.config["LOG_LEVEL"])
db = SQLAlchemy(app)
mail = Mail(app)

# Notification emails go out from a background scheduler thread so a slow SMTP
# server never holds up a request. Inline delivery when NOTIFY_ASYNC is off.
if app.config.get("NOTIFY_ASYNC"):
    scheduler = BackgroundScheduler()
    scheduler.start()
else:
    scheduler = None

# Hash a plain ADMIN_PASSWORD once at startup; only the hash is kept around.
if not app.config.get("ADMIN_PASSWORD_HASH") and app.config.get("ADMIN_PASSWORD"):
    app.config["ADMIN_PASSWORD_HASH"] = generate_password_hash(app.config["ADMIN_PASSWORD"])
app.config.pop("ADMIN_PASSWORD", None)
if not app.config.get("ADMIN_PASSWORD_HASH"):
    app.logger.warning("No ADMIN_PASSWORD or ADMIN_PASSWORD_HASH configured; admin login is disabled.")


# Timezone helper functions
# Pickup dates are local Oregon dates, not UTC
def get_local_now():
    """Get current datetime in the configured app timezone."""
    return datetime.now(ZoneInfo(app.config["APP_TIMEZONE"]))


def get_local_today():
    """Get current date in the app timezone (not UTC)."""
    return get_local_now().date()


def utcnow():
    """Naive UTC, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


# ==========================
# MODELS
# ==========================

SIGNUP_ACTIVE = "active"
SIGNUP_CANCELLED = "cancelled"


class PickupLocation(db.Model):
    """
    One hub on one date where meals can be dropped off.
    Example: Salem on 2025-12-06.
    """
    __tablename__ = "pickup_locations"

    id = db.Column(db.Integer, primary_key=True)
    pickup_date = db.Column(db.Date, nullable=False, index=True)
    location = db.Column(db.String(50), nullable=False, index=True)  # key from locations.LOCATIONS
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    signups = db.relationship("MealSignup", back_populates="pickup_location")

    __table_args__ = (db.UniqueConstraint('pickup_date', 'location', name='uq_pickup_date_location'),)

    def to_dict(self):
        return {
            "id": self.id,
            "pickup_date": _iso(self.pickup_date),
            "location": self.location,
            "active": self.active,
            "created_at": _iso(self.created_at),
        }


class MealSignup(db.Model):
    """
    A provider's commitment to bring one meal to a pickup location.
    Cancelling flips status to 'cancelled'; the row is kept for the record.
    """
    __tablename__ = "meal_signups"

    id = db.Column(db.Integer, primary_key=True)
    pickup_location_id = db.Column(
        db.Integer,
        db.ForeignKey("pickup_locations.id"),
        nullable=False,
        index=True
    )
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(40), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    meal_description = db.Column(db.Text, nullable=False)
    freezer_friendly = db.Column(db.Boolean, nullable=False, default=False)
    note_to_courier = db.Column(db.Text, nullable=True)
    can_bring_to_salem = db.Column(db.Boolean, nullable=False, default=False)
    cancellation_token = db.Column(
        db.String(36),
        nullable=False,
        unique=True,
        index=True,
        default=lambda: str(uuid.uuid4())
    )
    status = db.Column(db.String(20), nullable=False, default=SIGNUP_ACTIVE, index=True)  # active, cancelled
    cancelled_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    pickup_location = db.relationship("PickupLocation", back_populates="signups")

    @property
    def is_cancelled(self) -> bool:
        return self.status == SIGNUP_CANCELLED

    def to_dict(self):
        return {
            "id": self.id,
            "pickup_location_id": self.pickup_location_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "meal_description": self.meal_description,
            "freezer_friendly": self.freezer_friendly,
            "note_to_courier": self.note_to_courier,
            "can_bring_to_salem": self.can_bring_to_salem,
            "cancellation_token": self.cancellation_token,
            "status": self.status,
            "cancelled_at": _iso(self.cancelled_at),
            "created_at": _iso(self.created_at),
            "pickup_date": _iso(self.pickup_location.pickup_date),
            "location": self.pickup_location.location,
        }

    def to_public_dict(self):
        """What anyone may see on the public meal list: no contact details."""
        return {
            "id": self.id,
            "pickup_location_id": self.pickup_location_id,
            "pickup_date": _iso(self.pickup_location.pickup_date),
            "location": self.pickup_location.location,
            "name": self.name,
            "meal_description": self.meal_description,
            "freezer_friendly": self.freezer_friendly,
            "can_bring_to_salem": self.can_bring_to_salem,
            "cancelled": self.is_cancelled,
            "created_at": _iso(self.created_at),
        }


class Courier(db.Model):
    """
    A volunteer who relays meals from one or more hubs.
    `locations` is a JSON list of location keys, e.g. ["Salem", "Portland"].
    """
    __tablename__ = "couriers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(40), nullable=False)
    locations = db.Column(db.JSON, nullable=False, default=lambda: [])
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def serves(self, location: str) -> bool:
        return location in (self.locations or [])

    def contact(self):
        return {"name": self.name, "phone": format_phone(self.phone), "email": self.email}

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "locations": list(self.locations or []),
            "active": self.active,
            "created_at": _iso(self.created_at),
        }


# ==========================
# AUTH HELPERS
# ==========================

ADMIN_SESSION_KEY = "admin"
ADMIN_SESSION_VALUE = "authenticated"


def verify_admin_password(password) -> bool:
    password_hash = app.config.get("ADMIN_PASSWORD_HASH")
    if not password_hash or not password:
        return False
    return check_password_hash(password_hash, password)


def admin_login(password):
    """Check the admin password and return the session credential to store."""
    if not password:
        raise ValidationError("Password is required")
    if not verify_admin_password(password):
        app.logger.warning("Failed admin login attempt")
        raise AuthorizationError("Invalid password")
    app.logger.info("Admin logged in")
    return ADMIN_SESSION_VALUE


def require_admin(credential):
    if credential != ADMIN_SESSION_VALUE:
        raise AuthorizationError()


def current_admin_credential():
    return session.get(ADMIN_SESSION_KEY)


def authorize_cron(authorization_header):
    secret = app.config.get("CRON_SECRET")
    if secret and authorization_header != f"Bearer {secret}":
        raise AuthorizationError()


# ==========================
# EMAIL FUNCTIONS
# ==========================

class OutboundEmail(NamedTuple):
    to: str
    subject: str
    html: str
    ical_attachment: Optional[bytes] = None
    ical_filename: Optional[str] = None


def send_email(to, subject, html, ical_attachment=None, ical_filename=None):
    """Send an HTML email using Flask-Mail with optional iCal attachment."""
    msg = Message(subject, recipients=[to], html=html)

    if ical_attachment and ical_filename:
        msg.attach(ical_filename, "text/calendar", ical_attachment)

    try:
        mail.send(msg)
    except Exception as e:
        raise NotificationError(f"Email to {to} failed: {e}") from e
    app.logger.info(f"Email sent to {to}: {subject}")


def deliver_notifications(emails) -> int:
    """Send each email in turn; failures are logged and skipped. Returns the number sent."""
    sent = 0
    for email in emails:
        try:
            send_email(*email)
            sent += 1
        except NotificationError as e:
            app.logger.error(e.message)
    return sent


def _deliver_in_app_context(emails):
    with app.app_context():
        deliver_notifications(emails)


def dispatch_notifications(emails):
    """Hand a batch of already-rendered emails off after the database commit."""
    emails = list(emails)
    if not emails:
        return
    if scheduler:
        scheduler.add_job(_deliver_in_app_context, args=[emails])
    else:
        deliver_notifications(emails)


def get_couriers_for_location(location):
    couriers = Courier.query.filter_by(active=True).order_by(Courier.name.asc()).all()
    return [c for c in couriers if c.serves(location)]


def count_active_signups(pickup_location_id) -> int:
    return MealSignup.query.filter_by(
        pickup_location_id=pickup_location_id,
        status=SIGNUP_ACTIVE
    ).count()


def cancellation_url_for(token):
    return f"{app.config['APP_BASE_URL']}/cancel/{token}"


# ==========================
# INPUT HELPERS
# ==========================

TRUE_STRINGS = {"true", "1", "yes", "on"}


def _clean(value):
    if value is None:
        return ""
    return str(value).strip()


def _as_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def _as_id(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_pickup_date(value):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(_clean(value).split("T")[0])
    except ValueError:
        raise ValidationError("Invalid pickup date. Use YYYY-MM-DD")


def _commit(failure_message):
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        app.logger.exception(failure_message)
        raise StorageError(failure_message)


# ==========================
# SIGNUP / CANCELLATION
# ==========================

def list_upcoming_pickup_locations():
    """Active pickup locations from today on, for the signup form."""
    rows = (
        PickupLocation.query
        .filter(PickupLocation.active.is_(True), PickupLocation.pickup_date >= get_local_today())
        .order_by(PickupLocation.pickup_date.asc(), PickupLocation.location.asc())
        .all()
    )
    return [row.to_dict() for row in rows]


def list_upcoming_meals_by_location():
    """Signups (cancelled included, flagged) at today-or-later pickups, grouped by hub."""
    meals = (
        MealSignup.query
        .join(PickupLocation)
        .options(db.contains_eager(MealSignup.pickup_location))
        .filter(PickupLocation.pickup_date >= get_local_today())
        .order_by(PickupLocation.pickup_date.asc(), MealSignup.created_at.asc(), MealSignup.id.asc())
        .all()
    )
    grouped = {key: [] for key in LOCATION_KEYS}
    for meal in meals:
        if meal.pickup_location.location in grouped:
            grouped[meal.pickup_location.location].append(meal.to_public_dict())
    return grouped


def create_meal_signup(name, phone, email, pickup_location_id, meal_description,
                       freezer_friendly=False, note_to_courier=None, can_bring_to_salem=False):
    name = _clean(name)
    phone = _clean(phone)
    email = _clean(email)
    meal_description = _clean(meal_description)
    note_to_courier = _clean(note_to_courier) or None

    if not (name and phone and email and pickup_location_id and meal_description):
        raise ValidationError("Missing required fields")
    if not is_valid_email(email):
        raise ValidationError("Invalid email format")
    if not is_valid_phone(phone):
        raise ValidationError("Invalid phone number")

    # Missing, inactive and past locations all get the same answer
    location_id = _as_id(pickup_location_id)
    pickup = db.session.get(PickupLocation, location_id) if location_id is not None else None
    if not pickup or not pickup.active or pickup.pickup_date < get_local_today():
        raise NotFoundError("Invalid or inactive pickup location")

    signup = MealSignup(
        pickup_location_id=pickup.id,
        name=name,
        phone=phone,
        email=email,
        meal_description=meal_description,
        freezer_friendly=_as_bool(freezer_friendly),
        note_to_courier=note_to_courier,
        can_bring_to_salem=_as_bool(can_bring_to_salem),
    )
    db.session.add(signup)
    _commit("Failed to create meal signup")
    app.logger.info(f"New meal signup {signup.id} for {pickup.location} on {pickup.pickup_date}")

    couriers = get_couriers_for_location(pickup.location)
    total_meals = count_active_signups(pickup.id)
    cancellation_url = cancellation_url_for(signup.cancellation_token)

    emails = [
        OutboundEmail(
            email,
            f"Meal Drop-off Confirmation - {format_date(pickup.pickup_date)}",
            render_confirmation_email(
                name, pickup.pickup_date, pickup.location, meal_description,
                signup.freezer_friendly, cancellation_url,
                [c.contact() for c in couriers],
            ),
            generate_dropoff_ical(pickup.pickup_date, pickup.location, meal_description, cancellation_url),
            f"meal_dropoff_{pickup.pickup_date:%Y%m%d}_{signup.id}.ics",
        )
    ]
    for courier in couriers:
        emails.append(OutboundEmail(
            courier.email,
            f"New Meal Signup - {pickup.location} - {format_date(pickup.pickup_date)}",
            render_new_signup_notification_email(
                name, format_phone(phone), meal_description,
                signup.freezer_friendly, signup.can_bring_to_salem, note_to_courier,
                pickup.pickup_date, pickup.location, total_meals,
            ),
        ))
    dispatch_notifications(emails)

    return {
        "success": True,
        "mealId": signup.id,
        "message": "Meal signup successful! Check your email for confirmation.",
    }


def _find_signup_by_token(token):
    token = _clean(token)
    signup = None
    if token:
        signup = (
            MealSignup.query
            .options(db.joinedload(MealSignup.pickup_location))
            .filter_by(cancellation_token=token)
            .first()
        )
    if not signup:
        raise NotFoundError("Invalid cancellation link")
    return signup


def get_cancellation_summary(token):
    signup = _find_signup_by_token(token)
    return {
        "id": signup.id,
        "name": signup.name,
        "mealDescription": signup.meal_description,
        "pickupDate": _iso(signup.pickup_location.pickup_date),
        "location": signup.pickup_location.location,
        "alreadyCancelled": signup.is_cancelled,
    }


def cancel_meal_signup(token):
    signup = _find_signup_by_token(token)
    if signup.is_cancelled:
        raise ValidationError("This meal has already been cancelled")

    pickup = signup.pickup_location
    name, email, meal_description = signup.name, signup.email, signup.meal_description

    # Conditional update so two racing cancels can't both succeed
    updated = (
        MealSignup.query
        .filter_by(id=signup.id, status=SIGNUP_ACTIVE)
        .update({"status": SIGNUP_CANCELLED, "cancelled_at": utcnow()}, synchronize_session=False)
    )
    _commit("Failed to cancel meal")
    if not updated:
        raise ValidationError("This meal has already been cancelled")
    app.logger.info(f"Meal signup {signup.id} cancelled ({pickup.location} on {pickup.pickup_date})")

    remaining = count_active_signups(pickup.id)
    emails = [
        OutboundEmail(
            courier.email,
            f"Meal Cancellation - {pickup.location} - {format_date(pickup.pickup_date)}",
            render_cancellation_notice_email(
                name, meal_description, pickup.pickup_date, pickup.location, remaining
            ),
        )
        for courier in get_couriers_for_location(pickup.location)
    ]
    emails.append(OutboundEmail(
        email,
        "Meal Cancellation Confirmed",
        render_cancellation_confirmation_email(name, meal_description, pickup.pickup_date, pickup.location),
    ))
    dispatch_notifications(emails)

    return {"success": True, "message": "Meal cancelled successfully"}


# ==========================
# REMINDERS
# ==========================

def send_tomorrow_reminders(run_date: date = None):
    """Email every provider with a meal tomorrow, plus a summary to each courier.

    There is no record of what was already sent: running this twice in a day
    sends everything twice.
    """
    tomorrow = (run_date or get_local_today()) + timedelta(days=1)
    app.logger.info(f"Sending reminders for {tomorrow}")

    pickups = (
        PickupLocation.query
        .filter_by(pickup_date=tomorrow, active=True)
        .order_by(PickupLocation.location.asc())
        .all()
    )
    stats = {
        "pickupLocations": len(pickups),
        "remindersSent": 0,
        "courierSummariesSent": 0,
        "emailsAttempted": 0,
    }

    for pickup in pickups:
        meals = (
            MealSignup.query
            .filter_by(pickup_location_id=pickup.id, status=SIGNUP_ACTIVE)
            .order_by(MealSignup.created_at.asc(), MealSignup.id.asc())
            .all()
        )
        if not meals:
            app.logger.info(f"No meals for {pickup.location} on {tomorrow}")
            continue

        couriers = get_couriers_for_location(pickup.location)
        contacts = [c.contact() for c in couriers]
        reminders = [
            OutboundEmail(
                meal.email,
                f"Reminder: Meal Drop-off Tomorrow - {format_date(tomorrow)}",
                render_reminder_email(meal.name, tomorrow, pickup.location, meal.meal_description, contacts),
            )
            for meal in meals
        ]
        summary_html = render_courier_summary_email(pickup.location, tomorrow, [
            {
                "name": meal.name,
                "phone": format_phone(meal.phone),
                "meal_description": meal.meal_description,
                "freezer_friendly": meal.freezer_friendly,
                "can_bring_to_salem": meal.can_bring_to_salem,
                "note_to_courier": meal.note_to_courier,
            }
            for meal in meals
        ])
        summaries = [
            OutboundEmail(
                courier.email,
                f"Meal Pickup Summary - {pickup.location} - {format_date(tomorrow)}",
                summary_html,
            )
            for courier in couriers
        ]

        stats["emailsAttempted"] += len(reminders) + len(summaries)
        stats["remindersSent"] += deliver_notifications(reminders)
        stats["courierSummariesSent"] += deliver_notifications(summaries)

    return {"date": tomorrow.isoformat(), "stats": stats}


# ==========================
# ADMIN: COURIERS
# ==========================

def _validate_courier(name, email, phone, locations):
    if isinstance(locations, str):
        locations = [locations]
    if not (name and email and phone and locations):
        raise ValidationError("Name, email, phone, and at least one location are required")
    if not is_valid_email(email):
        raise ValidationError("Invalid email format")
    if not is_valid_phone(phone):
        raise ValidationError("Invalid phone number")

    if not isinstance(locations, (list, tuple)):
        raise ValidationError("Locations must be a list of location names")

    cleaned = []
    for loc in locations:
        if not isinstance(loc, str) or loc not in VALID_LOCATIONS:
            raise ValidationError(f"Invalid location: {loc}. Must be Salem, Portland, Eugene, or I5 Corridor")
        if loc not in cleaned:
            cleaned.append(loc)
    return cleaned


def _get_courier(courier_id):
    courier = db.session.get(Courier, courier_id)
    if not courier:
        raise NotFoundError("Courier not found")
    return courier


def list_couriers(credential):
    require_admin(credential)
    return [c.to_dict() for c in Courier.query.order_by(Courier.name.asc()).all()]


def create_courier(credential, name, email, phone, locations):
    require_admin(credential)
    name, email, phone = _clean(name), _clean(email), _clean(phone)
    locations = _validate_courier(name, email, phone, locations)

    courier = Courier(name=name, email=email, phone=phone, locations=locations, active=True)
    db.session.add(courier)
    _commit("Failed to create courier")
    app.logger.info(f"Courier {courier.id} created for {', '.join(locations)}")
    return courier.to_dict()


def update_courier(credential, courier_id, name, email, phone, locations, active=None):
    require_admin(credential)
    name, email, phone = _clean(name), _clean(email), _clean(phone)
    locations = _validate_courier(name, email, phone, locations)
    courier = _get_courier(courier_id)

    courier.name = name
    courier.email = email
    courier.phone = phone
    courier.locations = locations
    courier.active = _as_bool(active, default=True)
    _commit("Failed to update courier")
    return courier.to_dict()


def delete_courier(credential, courier_id):
    require_admin(credential)
    courier = _get_courier(courier_id)
    db.session.delete(courier)
    _commit("Failed to delete courier")
    app.logger.info(f"Courier {courier_id} deleted")


# ==========================
# ADMIN: PICKUP LOCATIONS
# ==========================

def _validate_pickup(pickup_date, location):
    location = _clean(location)
    if not _clean(pickup_date) or not location:
        raise ValidationError("Pickup date and location are required")
    if location not in VALID_LOCATIONS:
        raise ValidationError("Invalid location. Must be Salem, Portland, Eugene, or I5 Corridor")
    return _parse_pickup_date(pickup_date), location


def list_pickup_locations(credential):
    require_admin(credential)
    rows = (
        PickupLocation.query
        .order_by(PickupLocation.pickup_date.desc(), PickupLocation.location.asc())
        .all()
    )
    return [row.to_dict() for row in rows]


def create_pickup_location(credential, pickup_date, location):
    require_admin(credential)
    pickup_date, location = _validate_pickup(pickup_date, location)

    if PickupLocation.query.filter_by(pickup_date=pickup_date, location=location).first():
        raise ConflictError("Pickup location already exists for this date and location")

    pickup = PickupLocation(pickup_date=pickup_date, location=location, active=True)
    db.session.add(pickup)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Pickup location already exists for this date and location")
    except SQLAlchemyError:
        db.session.rollback()
        app.logger.exception("Failed to create pickup location")
        raise StorageError("Failed to create pickup location")
    return pickup.to_dict()


def update_pickup_location(credential, pickup_location_id, pickup_date, location, active=None):
    require_admin(credential)
    pickup_date, location = _validate_pickup(pickup_date, location)

    clash = (
        PickupLocation.query
        .filter(
            PickupLocation.pickup_date == pickup_date,
            PickupLocation.location == location,
            PickupLocation.id != pickup_location_id,
        )
        .first()
    )
    if clash:
        raise ConflictError(f"A pickup location for {location} on {pickup_date.isoformat()} already exists")

    pickup = db.session.get(PickupLocation, pickup_location_id)
    if not pickup:
        raise NotFoundError("Pickup location not found")
    pickup.pickup_date = pickup_date
    pickup.location = location
    pickup.active = _as_bool(active, default=True)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"A pickup location for {location} on {pickup_date.isoformat()} already exists")
    except SQLAlchemyError:
        db.session.rollback()
        app.logger.exception("Failed to update pickup location")
        raise StorageError("Failed to update pickup location")
    return pickup.to_dict()


def delete_pickup_location(credential, pickup_location_id):
    """Hard delete, unless signups point at it; then it is only deactivated."""
    require_admin(credential)
    pickup = db.session.get(PickupLocation, pickup_location_id)
    if not pickup:
        raise NotFoundError("Pickup location not found")

    if MealSignup.query.filter_by(pickup_location_id=pickup.id).count() > 0:
        pickup.active = False
        _commit("Failed to delete pickup location")
        return {"success": True, "deactivated": True,
                "message": "Pickup location deactivated (has existing signups)"}

    db.session.delete(pickup)
    _commit("Failed to delete pickup location")
    return {"success": True, "deactivated": False, "message": "Pickup location deleted"}


# ==========================
# ADMIN: MEALS
# ==========================

def list_meals(credential, location=None, status=None):
    require_admin(credential)
    query = (
        MealSignup.query
        .join(PickupLocation)
        .options(db.contains_eager(MealSignup.pickup_location))
    )
    if location:
        query = query.filter(PickupLocation.location == location)
    if status in (SIGNUP_ACTIVE, SIGNUP_CANCELLED):
        query = query.filter(MealSignup.status == status)
    meals = query.order_by(
        PickupLocation.pickup_date.desc(),
        MealSignup.created_at.desc(),
        MealSignup.id.desc(),
    ).all()
    return [meal.to_dict() for meal in meals]


def delete_meal(credential, meal_id):
    require_admin(credential)
    meal = db.session.get(MealSignup, meal_id)
    if not meal:
        raise NotFoundError("Meal signup not found")
    db.session.delete(meal)
    _commit("Failed to delete meal signup")
    app.logger.info(f"Meal signup {meal_id} deleted by admin")


# ==========================
# SEEDING
# ==========================

def seed_pickup_locations():
    """Create every hub x allowed-date pickup location that doesn't exist yet."""
    results = []
    for pickup_date in ALLOWED_DATES:
        for location in LOCATION_KEYS:
            existing = PickupLocation.query.filter_by(pickup_date=pickup_date, location=location).first()
            if existing:
                results.append({"action": "exists", "id": existing.id,
                                "pickup_date": pickup_date.isoformat(), "location": location})
                continue
            try:
                pickup = PickupLocation(pickup_date=pickup_date, location=location, active=True)
                db.session.add(pickup)
                db.session.commit()
                results.append({"action": "created", **pickup.to_dict()})
            except SQLAlchemyError as e:
                db.session.rollback()
                app.logger.error(f"Seeding {location} on {pickup_date} failed: {e}")
                results.append({"action": "error", "pickup_date": pickup_date.isoformat(),
                                "location": location, "error": "Failed to create pickup location"})
    return results


def delete_unused_pickup_locations(confirm=False):
    """Remove every pickup location no signup has ever referenced."""
    if not confirm:
        raise ValidationError("Add ?confirm=yes to delete all pickup locations without meal signups")
    unused = PickupLocation.query.filter(~PickupLocation.signups.any()).all()
    deleted = [pickup.to_dict() for pickup in unused]
    for pickup in unused:
        db.session.delete(pickup)
    _commit("Failed to delete locations")
    app.logger.info(f"Deleted {len(deleted)} unused pickup locations")
    return deleted


# ==========================
# ERROR HANDLERS
# ==========================

@app.errorhandler(MealSignupError)
def handle_meal_signup_error(error):
    return jsonify({"error": error.message}), error.status_code


@app.errorhandler(SQLAlchemyError)
def handle_database_error(error):
    db.session.rollback()
    app.logger.exception(f"Database error on {request.path}: {error}")
    return jsonify({"error": "Internal server error"}), 500


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ==========================
# PUBLIC ROUTES
# ==========================

@app.route("/healthz")
def healthz():
    return jsonify({"ok": True})


@app.route("/api/pickup-locations")
def api_pickup_locations():
    return jsonify(list_upcoming_pickup_locations())


@app.route("/api/meals", methods=["GET"])
def api_meals():
    return jsonify(list_upcoming_meals_by_location())


@app.route("/api/meals", methods=["POST"])
def api_meal_signup():
    data = _json_body()
    result = create_meal_signup(
        name=data.get("name"),
        phone=data.get("phone"),
        email=data.get("email"),
        pickup_location_id=data.get("pickupLocationId"),
        meal_description=data.get("mealDescription"),
        freezer_friendly=data.get("freezerFriendly"),
        note_to_courier=data.get("noteToCourier"),
        can_bring_to_salem=data.get("canBringToSalem"),
    )
    return jsonify(result)


@app.route("/api/cancel/<token>", methods=["GET"])
def api_cancel_summary(token):
    return jsonify(get_cancellation_summary(token))


@app.route("/api/cancel/<token>", methods=["POST"])
def api_cancel_meal(token):
    return jsonify(cancel_meal_signup(token))


@app.route("/api/cron/send-reminders")
def api_send_reminders():
    authorize_cron(request.headers.get("Authorization"))
    result = send_tomorrow_reminders()
    if not result["stats"]["pickupLocations"]:
        message = "No pickups scheduled for tomorrow"
    else:
        message = "Reminders sent successfully"
    return jsonify({"success": True, "message": message, **result})


# ==========================
# ADMIN ROUTES
# ==========================

@app.route("/api/admin/login", methods=["POST"])
def api_admin_login():
    credential = admin_login(_json_body().get("password"))
    session.permanent = True  # Use PERMANENT_SESSION_LIFETIME from config
    session[ADMIN_SESSION_KEY] = credential
    return jsonify({"success": True, "message": "Login successful"})


@app.route("/api/admin/logout", methods=["POST"])
def api_admin_logout():
    session.pop(ADMIN_SESSION_KEY, None)
    return jsonify({"success": True, "message": "Logged out successfully"})


@app.route("/api/admin/couriers", methods=["GET"])
def api_admin_couriers():
    return jsonify(list_couriers(current_admin_credential()))


@app.route("/api/admin/couriers", methods=["POST"])
def api_admin_courier_create():
    data = _json_body()
    courier = create_courier(
        current_admin_credential(),
        data.get("name"), data.get("email"), data.get("phone"), data.get("locations"),
    )
    return jsonify({"success": True, "courier": courier})


@app.route("/api/admin/couriers/<int:courier_id>", methods=["PUT"])
def api_admin_courier_update(courier_id):
    data = _json_body()
    courier = update_courier(
        current_admin_credential(), courier_id,
        data.get("name"), data.get("email"), data.get("phone"), data.get("locations"),
        data.get("active"),
    )
    return jsonify({"success": True, "courier": courier})


@app.route("/api/admin/couriers/<int:courier_id>", methods=["DELETE"])
def api_admin_courier_delete(courier_id):
    delete_courier(current_admin_credential(), courier_id)
    return jsonify({"success": True, "message": "Courier deleted"})


@app.route("/api/admin/pickup-locations", methods=["GET"])
def api_admin_pickup_locations():
    return jsonify(list_pickup_locations(current_admin_credential()))


@app.route("/api/admin/pickup-locations", methods=["POST"])
def api_admin_pickup_location_create():
    data = _json_body()
    pickup = create_pickup_location(current_admin_credential(), data.get("pickupDate"), data.get("location"))
    return jsonify({"success": True, "pickupLocation": pickup})


@app.route("/api/admin/pickup-locations/<int:pickup_location_id>", methods=["PUT"])
def api_admin_pickup_location_update(pickup_location_id):
    data = _json_body()
    pickup = update_pickup_location(
        current_admin_credential(), pickup_location_id,
        data.get("pickupDate"), data.get("location"), data.get("active"),
    )
    return jsonify({"success": True, "pickupLocation": pickup})


@app.route("/api/admin/pickup-locations/<int:pickup_location_id>", methods=["DELETE"])
def api_admin_pickup_location_delete(pickup_location_id):
    return jsonify(delete_pickup_location(current_admin_credential(), pickup_location_id))


@app.route("/api/admin/meals", methods=["GET"])
def api_admin_meals():
    return jsonify(list_meals(
        current_admin_credential(),
        location=request.args.get("location"),
        status=request.args.get("status"),
    ))


@app.route("/api/admin/meals/<int:meal_id>", methods=["DELETE"])
def api_admin_meal_delete(meal_id):
    delete_meal(current_admin_credential(), meal_id)
    return jsonify({"success": True, "message": "Meal signup deleted"})


@app.route("/api/seed-locations", methods=["GET"])
def api_seed_locations_list():
    require_admin(current_admin_credential())
    rows = PickupLocation.query.order_by(PickupLocation.pickup_date.asc(), PickupLocation.location.asc()).all()
    return jsonify({
        "message": "Current pickup locations. POST to seed, DELETE to clear unused.",
        "count": len(rows),
        "locations": [row.to_dict() for row in rows],
        "allowedDates": [d.isoformat() for d in ALLOWED_DATES],
        "allowedLocations": list(LOCATION_KEYS),
    })


@app.route("/api/seed-locations", methods=["POST"])
def api_seed_locations():
    require_admin(current_admin_credential())
    results = seed_pickup_locations()
    return jsonify({
        "success": True,
        "message": f"Processed {len(results)} pickup locations",
        "results": results,
    })


@app.route("/api/seed-locations", methods=["DELETE"])
def api_seed_locations_clear():
    require_admin(current_admin_credential())
    deleted = delete_unused_pickup_locations(confirm=request.args.get("confirm") == "yes")
    return jsonify({
        "success": True,
        "message": f"Deleted {len(deleted)} pickup locations",
        "deleted": deleted,
    })


# ==========================
# CLI COMMANDS
# ==========================

@app.cli.command("init-db")
def init_db_command():
    """
    Create the pickup_locations, meal_signups and couriers tables.
    Run with: flask --app app.py init-db
    """
    db.create_all()
    print("Database initialized.")


@app.cli.command("seed-locations")
def seed_locations_command():
    """Insert every hub x allowed date pickup location that is missing.
    Run with: flask --app app.py seed-locations
    """
    results = seed_pickup_locations()
    created = sum(1 for r in results if r["action"] == "created")
    errors = sum(1 for r in results if r["action"] == "error")
    print(f"Processed {len(results)} pickup locations: {created} created, {errors} failed.")


@app.cli.command("clear-unused-locations")
@click.option("--confirm", is_flag=True, help="Actually delete pickup locations that have no signups.")
def clear_unused_locations_command(confirm):
    """Delete pickup locations that no meal signup references.
    Run with: flask --app app.py clear-unused-locations --confirm
    """
    if not confirm:
        print("Nothing deleted. Re-run with --confirm to delete pickup locations without signups.")
        return
    deleted = delete_unused_pickup_locations(confirm=True)
    print(f"Deleted {len(deleted)} pickup locations.")


@app.cli.command("send-reminders")
def send_reminders_command():
    """Send tomorrow's provider reminders and courier summaries once.
    Run with: flask --app app.py send-reminders
    """
    result = send_tomorrow_reminders()
    stats = result["stats"]
    print(
        f"{result['date']}: {stats['pickupLocations']} pickup locations, "
        f"{stats['remindersSent']} reminders and {stats['courierSummariesSent']} courier summaries sent "
        f"({stats['emailsAttempted']} attempted)."
    )


if __name__ == "__main__":
    with app.app_context():
        db.create_all()
    app.run(debug=True)
