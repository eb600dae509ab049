"""Runtime configuration defaults for the store, alerts and apps."""

from __future__ import annotations

DB_PATH = "data/atelier.db"
LOG_PATH = "/tmp/atelier-debug.log"

# Live store.
STORE_POLL_INTERVAL_SECONDS = 0.5
ANONYMOUS_AUTH_ENABLED = True

# Alert display durations. None keeps the alert until dismissed.
ORDER_ALERT_SECONDS: float | None = None
STOCK_ALERT_SECONDS = 8.0
NOTICE_SECONDS = 2.0

CHECKOUT_SUCCESS_DISMISS_SECONDS = 6.0

SOUND_PREFERENCE_KEY = "admin_sound_enabled"

# Plaintext operator credentials.
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"

IMAGE_MAX_PX = 800
IMAGE_JPEG_QUALITY = 80
