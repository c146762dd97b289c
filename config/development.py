import os

from config.config import Config

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
JWT_SECRET = os.getenv("JWT_SECRET", SECRET_KEY)

DB_CONFIG = Config.db_config()

PASSWORD_HASH_METHOD = Config.PASSWORD_HASH_METHOD

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: seed one employee per designation into an empty registry
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
