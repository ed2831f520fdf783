"""Runtime configuration read from the environment (and a local .env file)."""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

CONTENT_DIR = Path(__file__).parent / "content"

DB_PATH: str = os.getenv("PYQDECK_DB_PATH", str(Path.home() / ".pyqdeck" / "pyqdeck.db"))
CATALOG_PATH: str = os.getenv("PYQDECK_CATALOG", str(CONTENT_DIR / "catalog.json"))
LOG_LEVEL: str = os.getenv("PYQDECK_LOG_LEVEL", "WARNING").upper()

# AI explanation service (any OpenAI-compatible endpoint)
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
AI_BASE_URL: str | None = os.getenv("PYQDECK_AI_BASE_URL") or None
AI_MODEL: str = os.getenv("PYQDECK_AI_MODEL", "gpt-4o-mini")
AI_TIMEOUT: float = float(os.getenv("PYQDECK_AI_TIMEOUT", "60.0"))
