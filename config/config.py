import os


class Config:
    """Environment-driven defaults shared by every settings module."""

    SECRET_KEY = os.environ.get("SECRET_KEY") or "field-visits-dev-secret"
    JWT_SECRET = os.environ.get("JWT_SECRET") or SECRET_KEY

    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "field_visits")

    # werkzeug.security method string, e.g. "scrypt" or "pbkdf2:sha256"
    PASSWORD_HASH_METHOD = os.environ.get("PASSWORD_HASH_METHOD", "scrypt")

    @classmethod
    def db_config(cls) -> dict:
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "database": cls.DB_NAME,
        }
