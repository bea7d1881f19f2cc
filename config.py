import os
from datetime import timedelta


class Config:

    # In a real deployment, keep the secret key in environment variables.
    # It signs every bearer token, so rotating it logs everybody out.
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Database configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///todo.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens expire this long after they were issued
    TOKEN_MAX_AGE = timedelta(hours=int(os.environ.get("TOKEN_MAX_AGE_HOURS", "24")))

    # Any method understood by werkzeug.security.generate_password_hash
    PASSWORD_HASH_METHOD = os.environ.get("PASSWORD_HASH_METHOD", "scrypt")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):

    TESTING = True
    SECRET_KEY = "testing-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"

    # Cheap hashing keeps the test suite fast
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"

    LOG_LEVEL = "DEBUG"
