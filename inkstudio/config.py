import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Falls back to a local SQLite file for development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./inkstudio.db")

# Shared secret for the cron dispatcher - requests are rejected while unset
CRON_SECRET = os.getenv("CRON_SECRET")

# Admin API key for the appointment management endpoints
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")

# Frontend base URL for CORS and links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

STUDIO_NAME = os.getenv("STUDIO_NAME", "Ink 37 Tattoos")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Ink 37 Tattoos <noreply@ink37tattoos.com>")

# Webhook signing secrets
CAL_WEBHOOK_SECRET = os.getenv("CAL_WEBHOOK_SECRET")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

# Batch jobs
JOB_CONCURRENCY = int(os.getenv("JOB_CONCURRENCY", "10"))  # max in-flight sends per job
EMAIL_QUEUE_BATCH_SIZE = int(os.getenv("EMAIL_QUEUE_BATCH_SIZE", "50"))
EMAIL_QUEUE_MAX_ATTEMPTS = int(os.getenv("EMAIL_QUEUE_MAX_ATTEMPTS", "3"))
NOTIFICATION_RETENTION_DAYS = int(os.getenv("NOTIFICATION_RETENTION_DAYS", "365"))
JOB_LOCK_TTL_SECONDS = int(os.getenv("JOB_LOCK_TTL_SECONDS", "600"))

# Artist used when a Cal.com booking carries no organizer
DEFAULT_ARTIST_ID = os.getenv("DEFAULT_ARTIST_ID", "studio")
