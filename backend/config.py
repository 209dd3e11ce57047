# config.py
import os

def _csv_env(name: str, default: str = "") -> list[str]:
    val = os.getenv(name, default)
    # split only if non-empty; strip whitespace
    return [x.strip() for x in val.split(",")] if val else []

class BaseConfig:
    DEBUG = False
    TESTING = False
    JSON_SORT_KEYS = False
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10 MB
    PREFERRED_URL_SCHEME = "https"

    # Secrets (must be set in env for prod)
    SECRET_KEY = os.getenv("APP_SECRET_KEY") or "dev-only-secret-change-me"
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY") or "dev-only-jwt-secret-change-me"

    # CORS
    CORS_ORIGINS = _csv_env("CORS_ORIGINS", "http://localhost:5173,http://localhost:8080")

    # Uploads
    ALLOWED_EXTS = {"pdf", "docx"}

    # Local document store: one JSON file per collection
    DATA_DIR = os.getenv("DATA_DIR") or "./data"
    UPLOADED_RESUMES_FILE = "resumes.json"
    GENERATED_RESUMES_FILE = "generated-resumes.json"
    USERS_FILE = "users.json"

    RATELIMIT_ENABLED = True

class DevConfig(BaseConfig):
    DEBUG = True

class TestConfig(BaseConfig):
    TESTING = True
    RATELIMIT_ENABLED = False

class ProdConfig(BaseConfig):
    pass

def config_for_env(env: str | None):
    return {"prod": ProdConfig, "test": TestConfig}.get(env or "", DevConfig)

def validate_required_secrets():
    if os.getenv("ENV") == "prod":
        if not os.getenv("APP_SECRET_KEY") or not os.getenv("JWT_SECRET_KEY"):
            raise RuntimeError("APP_SECRET_KEY and JWT_SECRET_KEY must be set in production")
