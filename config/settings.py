"""
EShop - Centralized Configuration
==================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
import sys
from dotenv import load_dotenv

load_dotenv()


# ==========================================
# 🗄️ Database
# ==========================================
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    DB_USER = os.getenv("DB_USER")
    DB_PASSWORD = os.getenv("DB_PASSWORD")
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME")

    if not all([DB_USER, DB_PASSWORD, DB_HOST, DB_NAME]):
        print("[ERROR] Critical: Database config missing in .env (DATABASE_URL or DB_USER, DB_PASSWORD, DB_HOST, DB_NAME)")
        sys.exit(1)

    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


# ==========================================
# 🔐 Security
# ==========================================
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")

if not JWT_SECRET_KEY:
    print("[ERROR] Critical: Security key missing in .env (JWT_SECRET_KEY)")
    sys.exit(1)

ALGORITHM = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES") or 60 * 24 * 90)  # 90 days

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS") or "12")

PASSWORD_RESET_CODE_LENGTH = 6
PASSWORD_RESET_EXPIRE_MINUTES = 10


# ==========================================
# 💳 Stripe
# ==========================================
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")
STRIPE_WEBHOOK_TOLERANCE = int(os.getenv("STRIPE_WEBHOOK_TOLERANCE") or "300")  # seconds


# ==========================================
# ✉️ Email (SMTP)
# ==========================================
EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT") or "587")
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "E-shop App <no-reply@eshop.local>")


# ==========================================
# 🔧 App
# ==========================================
APP_ENV = os.getenv("APP_ENV", "production").lower()
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

API_PREFIX = "/api/v1"

# Pagination
DEFAULT_PAGE_LIMIT = 50

# Order pricing (flat, app-wide)
TAX_PRICE = 0
SHIPPING_PRICE = 0


def is_development() -> bool:
    return APP_ENV == "development" or DEBUG
