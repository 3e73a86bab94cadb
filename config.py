import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def parse_admin_emails(raw):
    """Split a comma separated allow-list into trimmed, lower-cased addresses."""
    return frozenset(e.strip().lower() for e in (raw or "").split(",") if e.strip())


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "kitchen.db"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    ADMIN_EMAILS = parse_admin_emails(os.getenv("ADMIN_EMAILS", ""))

    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")

    # order confirmation share link
    WHATSAPP_NUMBER = os.getenv("WHATSAPP_NUMBER", "+447542693682")
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "£")
    REDIRECT_SECONDS = int(os.getenv("REDIRECT_SECONDS", "5"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")
