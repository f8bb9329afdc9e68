import os
from datetime import timedelta


def _env_flag(name, default):
    return os.environ.get(name, default).lower() == "true"


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "change-this-in-production")
    # Database configuration
    # Use DATABASE_URL if provided (Heroku/Neon), otherwise a local SQLite file
    if os.getenv('DATABASE_URL'):
        raw_url = os.environ.get("DATABASE_URL")
        # Hosted Postgres may hand out postgres://; SQLAlchemy expects postgresql+psycopg2://
        if raw_url.startswith("postgres://"):
            raw_url = raw_url.replace("postgres://", "postgresql+psycopg2://", 1)
        elif raw_url.startswith("postgresql://"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg2://", 1)
        SQLALCHEMY_DATABASE_URI = raw_url
    else:
        # Relative SQLite paths resolve inside the Flask instance folder
        SQLALCHEMY_DATABASE_URI = "sqlite:///meals.sqlite3"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    TESTING = _env_flag("TESTING", "False")

    # Outbound email (Gmail app password by default)
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 465))
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "False")
    MAIL_USE_SSL = _env_flag("MAIL_USE_SSL", "True")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME") or os.environ.get("SENDER_EMAIL")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD") or os.environ.get("GMAIL_APP_PASSWORD")
    MAIL_DEFAULT_SENDER = (
        "Meals for Raquel",
        os.environ.get("MAIL_DEFAULT_SENDER") or os.environ.get("SENDER_EMAIL") or "noreply@example.org",
    )

    # Deliver notification emails from a background scheduler thread.
    # Disable for tests and one-shot scripts so delivery happens inline.
    NOTIFY_ASYNC = _env_flag("NOTIFY_ASYNC", "True")

    # Public URL used to build cancellation links in emails
    APP_BASE_URL = (os.environ.get("APP_BASE_URL") or "http://localhost:5000").rstrip("/")

    # Pickup dates are Oregon dates; "today" and "tomorrow" are computed here
    APP_TIMEZONE = os.environ.get("APP_TIMEZONE", "America/Los_Angeles")

    # ==========================
    # Admin access
    # ==========================
    # Either a werkzeug password hash or a plain password that is hashed at startup.
    ADMIN_PASSWORD_HASH = os.environ.get("ADMIN_PASSWORD_HASH")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")

    # Optional bearer secret for the scheduled reminder endpoint
    CRON_SECRET = os.environ.get("CRON_SECRET")

    # Admin session cookie: HttpOnly, SameSite=Lax, 24 hours
    SESSION_COOKIE_NAME = "admin_session"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.environ.get("FLASK_ENV") == "production"
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
