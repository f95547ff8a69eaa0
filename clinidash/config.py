import os

from dotenv import load_dotenv

load_dotenv()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")

# LLM configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "auto")
LLM_MODEL = os.getenv("LLM_MODEL", "")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2048"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "20"))

# When disabled, prescription drafting always uses the rule-based recommender
AI_PRESCRIPTION_ENABLED = os.getenv("AI_PRESCRIPTION_ENABLED", "true").lower() in ("1", "true", "yes", "on")

DATABASE_PATH = os.getenv("DATABASE_PATH", "clinidash.db")
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "true").lower() == "true"

DEFAULT_DOCTOR_ID = os.getenv("DEFAULT_DOCTOR_ID", "DOC001")
DEFAULT_DOCTOR_NAME = os.getenv("DEFAULT_DOCTOR_NAME", "Dr. Smith")
