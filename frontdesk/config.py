import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME: str = "Frontdesk"
    # Core settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development").lower()
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Session cookie issued by the auth service
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "frontdesk_session")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./frontdesk.db")

    # Default admin bootstrap
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@hotel.local")

    # Bookings
    CURRENCY: str = os.getenv("CURRENCY", "USD").upper()
    BOOKING_NUMBER_ATTEMPTS: int = int(os.getenv("BOOKING_NUMBER_ATTEMPTS", "5"))

    # Payments
    PAYMENT_WEBHOOK_SECRET: str = os.getenv("PAYMENT_WEBHOOK_SECRET", "")
    # "keep" leaves the booking pending after a failed payment, "cancel" cancels it
    PAYMENT_FAILURE_POLICY: str = os.getenv("PAYMENT_FAILURE_POLICY", "keep").lower()

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    RATE_LIMIT_DEFAULT: str = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
    RATE_LIMIT_WRITE: str = os.getenv("RATE_LIMIT_WRITE", "30/minute")

settings = Settings()
