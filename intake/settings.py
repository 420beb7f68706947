"""Runtime configuration.

Module-level constants read from the environment once at import. ``intake.main``
loads ``.env`` before anything imports this module.

Environment Variables:
- OPENAI_API_KEY / OPENAI_CHAT_MODEL: hosted model used for classification and extraction
- USE_OLLAMA / OLLAMA_MODEL: use a local Ollama model instead
- LLM_TIMEOUT_SECONDS: per-call timeout for the model
- LEAD_MARKETPLACE_URL / MARKETPLACE_TIMEOUT_SECONDS: lead marketplace endpoint
- ZIP_LOOKUP_URL / ZIP_LOOKUP_TIMEOUT_SECONDS: postal-code lookup service
- SESSION_BACKEND: "memory" (default) or "sqlite"
- SESSION_TTL_SECONDS / SESSION_SWEEP_INTERVAL_SECONDS: session expiry
- MAX_EXTRACTION_MISSES: misses on one field before the reply is read as a direct answer
- INTAKE_DB_PATH: sqlite file for sessions and the submission log
- PRACTICE_AREAS_PATH: practice-area catalog JSON
- LOG_LEVEL: root log level
"""

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


# Language model
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
USE_OLLAMA = os.getenv("USE_OLLAMA", "").lower() in ("1", "true", "yes")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "mistral")
LLM_TIMEOUT_SECONDS = _env_float("LLM_TIMEOUT_SECONDS", 15.0)

# Lead marketplace
LEAD_MARKETPLACE_URL = os.getenv("LEAD_MARKETPLACE_URL", "https://api.leadprosper.io/direct_post")
MARKETPLACE_CONNECT_TIMEOUT_SECONDS = _env_float("MARKETPLACE_CONNECT_TIMEOUT_SECONDS", 10.0)
MARKETPLACE_TIMEOUT_SECONDS = _env_float("MARKETPLACE_TIMEOUT_SECONDS", 30.0)

# Location lookup
ZIP_LOOKUP_URL = os.getenv("ZIP_LOOKUP_URL", "http://api.zippopotam.us/us")
ZIP_LOOKUP_TIMEOUT_SECONDS = _env_float("ZIP_LOOKUP_TIMEOUT_SECONDS", 5.0)

# Sessions
SESSION_BACKEND = os.getenv("SESSION_BACKEND", "memory").lower()
SESSION_TTL_SECONDS = _env_int("SESSION_TTL_SECONDS", 7 * 24 * 60 * 60)
SESSION_SWEEP_INTERVAL_SECONDS = _env_int("SESSION_SWEEP_INTERVAL_SECONDS", 300)
MAX_EXTRACTION_MISSES = _env_int("MAX_EXTRACTION_MISSES", 2)

# Storage / catalog
DB_PATH = Path(os.getenv("INTAKE_DB_PATH", str(PROJECT_ROOT / "data" / "intake.db")))
PRACTICE_AREAS_PATH = Path(
    os.getenv("PRACTICE_AREAS_PATH", str(Path(__file__).resolve().parent / "data" / "practice_areas.json"))
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
USER_AGENT = "legal-intake/0.1"
