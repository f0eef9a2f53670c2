import os
from dotenv import load_dotenv

load_dotenv()


def _env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError:
        return default


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./forms.db")
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "change-me")
ORIGINS = os.getenv("ORIGINS", "http://localhost:5173").split(",")
FORM_LOOKAHEAD_DAYS = _env_int("FORM_LOOKAHEAD_DAYS", 7)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
