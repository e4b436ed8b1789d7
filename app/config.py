import os


def _optional_float(name):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    return float(raw)


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "DEV")
    DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"

    # Directory store
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URI",
        "postgresql://postgres:postgres@db:5432/scoreboard"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,   # test connection before use
        "pool_recycle": 1800,    # recycle every 30min
        "pool_size": 5,
        "max_overflow": 10
    }

    # Tenant shards: <TENANT_DB_DIR>/<tenant_id>.db plus <tenant_id>.lock
    TENANT_DB_DIR = os.getenv("TENANT_DB_DIR", "../tenant_db")
    TENANT_DB_BUSY_TIMEOUT = float(os.getenv("TENANT_DB_BUSY_TIMEOUT", "5"))
    # None blocks until the holder releases
    TENANT_LOCK_TIMEOUT = _optional_float("TENANT_LOCK_TIMEOUT")

    ID_DISPENSE_MAX_RETRIES = int(os.getenv("ID_DISPENSE_MAX_RETRIES", "100"))

    RANKING_PAGE_SIZE = 100
    BILLING_TENANT_PAGE_SIZE = 10
    BILLING_FANOUT_WORKERS = int(os.getenv("BILLING_FANOUT_WORKERS", "10"))

    # Result cache
    RESULT_CACHE_ENABLED = os.getenv("RESULT_CACHE_ENABLED", "1") == "1"
    RESULT_CACHE_BACKEND = os.getenv("RESULT_CACHE_BACKEND", "memory")  # memory | redis
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Background recompute after score imports
    RECOMPUTE_ASYNC = os.getenv("RECOMPUTE_ASYNC", "1") == "1"

    # JWT
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_NAME = "Authorization"
    JWT_HEADER_TYPE = "Bearer"
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    SOCKETIO_ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE") or None


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 5}}
    TENANT_LOCK_TIMEOUT = None
    RESULT_CACHE_BACKEND = "memory"
    RECOMPUTE_ASYNC = False
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    SOCKETIO_ASYNC_MODE = "threading"
