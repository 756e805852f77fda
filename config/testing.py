import os
import tempfile

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_admin_test"),
    "connection_timeout": 5,
}
DB_CONNECT_RETRIES = 1

RECEIPTS_DIR = os.getenv("RECEIPTS_DIR", os.path.join(tempfile.gettempdir(), "school_admin_receipts"))
RECEIPTS_URL_PREFIX = "/receipts"

PUBLIC_LINK_DAYS = 7
BANNER_SECONDS = 4

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
