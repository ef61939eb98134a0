import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# "mysql" talks to DB_CONFIG directly, "rest" to a PostgREST/Supabase endpoint
STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_portal"),
}

REST_CONFIG = {
    "url": os.getenv("REST_URL", "http://localhost:54321/rest/v1"),
    "key": os.getenv("REST_KEY", ""),
    "timeout": float(os.getenv("REST_TIMEOUT", "10")),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo users on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
