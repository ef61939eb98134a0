import os

SECRET_KEY = "test-secret"

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_portal_test"),
}

REST_CONFIG = {
    "url": os.getenv("REST_URL", "http://store.test/rest/v1"),
    "key": os.getenv("REST_KEY", "test-key"),
    "timeout": 5.0,
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False
