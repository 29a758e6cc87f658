import os

BOOKING_DB = os.getenv("BOOKING_DB")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional in dev, required if you want events
REDIS_URL = os.getenv("REDIS_URL")  # optional, used by the notification consumer

SPORT_SERVICE_URL = os.getenv("SPORT_SERVICE_URL") or "http://sport-service:8000"
CLUB_SERVICE_URL = os.getenv("CLUB_SERVICE_URL") or "http://club-service:8000"
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT") or "3.0")

# single operating timezone for every service and club
APP_TIMEZONE = os.getenv("APP_TIMEZONE") or "Asia/Kolkata"

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

EXPIRY_SWEEP_INTERVAL_SECONDS = float(os.getenv("EXPIRY_SWEEP_INTERVAL_SECONDS") or "300")

LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"
