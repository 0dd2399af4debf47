import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./roadside.db")

# Public URL of this API (used when building status links for clients)
SERVER_URL = os.getenv("SERVER_URL", "http://localhost:8000")

# JWT Configuration
# JWKS_URL points at a Cognito-style key set; when unset tokens are HS256 signed with JWT_SECRET
JWKS_URL = os.getenv("JWKS_URL")
JWT_ISSUER = os.getenv("JWT_ISSUER")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE")

JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    JWT_SECRET = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# VAPI Configuration
VAPI_API_KEY = os.getenv("VAPI_API_KEY")
VAPI_BASE_URL = os.getenv("VAPI_BASE_URL", "https://api.vapi.ai")
# Server URL VAPI calls back for assistant requests
VAPI_WEBHOOK_BASE_URL = os.getenv("VAPI_WEBHOOK_BASE_URL", f"{SERVER_URL}/api/v1/webhook")
# Master switch for inbound AI calls (the "system status" toggle)
INBOUND_CALLS_ENABLED = os.getenv("INBOUND_CALLS_ENABLED", "true").lower() == "true"

# Twilio Configuration (platform account used for campaign SMS)
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")

# OpenAI Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")  # breakdown categorization
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")  # chat assistant replies

# Google Maps (geocoding + driving time)
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")

# Knowledge base ingestion service
KB_SERVICE_URL = os.getenv("KB_SERVICE_URL", "https://knowledge-base-tool.onrender.com")
# Public base URL for stored KB files (type=file items)
KB_FILES_BASE_URL = os.getenv("KB_FILES_BASE_URL", "")

# Campaign timer cadence for the worker cron
CAMPAIGN_TIMER_INTERVAL_MINUTES = int(os.getenv("CAMPAIGN_TIMER_INTERVAL_MINUTES", "5"))

# Frontend base URL
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# CORS - comma separated list of allowed origins
ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if o.strip()
]
