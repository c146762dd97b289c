import os

from config.config import Config

SECRET_KEY = "test-secret"
JWT_SECRET = "test-jwt-secret"

DB_CONFIG = dict(Config.db_config(), database=os.getenv("DB_NAME", "field_visits_test"))

# Cheap hashing keeps the suite fast.
PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
