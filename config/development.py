import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_admin_db"),
    "connection_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
}
DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", "3"))

# Uploaded receipts are written here and served under RECEIPTS_URL_PREFIX
RECEIPTS_DIR = os.getenv("RECEIPTS_DIR", "receipts")
RECEIPTS_URL_PREFIX = os.getenv("RECEIPTS_URL_PREFIX", "/receipts")

PUBLIC_LINK_DAYS = int(os.getenv("PUBLIC_LINK_DAYS", "7"))
BANNER_SECONDS = int(os.getenv("BANNER_SECONDS", "4"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
