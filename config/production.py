import os

from config.config import Config

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
JWT_SECRET = os.getenv("JWT_SECRET", "please-set-JWT_SECRET")

DB_CONFIG = Config.db_config()

PASSWORD_HASH_METHOD = Config.PASSWORD_HASH_METHOD

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
