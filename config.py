"""Market intel configuration — LLM providers, source credentials, pipeline knobs."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
ROOT_DIR = Path(__file__).parent
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "outputs")

# ---------------------------------------------------------------------------
# LLM Provider API Keys
# ---------------------------------------------------------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

# ---------------------------------------------------------------------------
# Model names (centralized so they're easy to update)
# ---------------------------------------------------------------------------
OPENAI_FRONTIER = "gpt-5.2"
OPENAI_MINI = "gpt-5.2-mini"
GOOGLE_FLASH = "gemini-2.5-flash"
ANTHROPIC_SONNET = "claude-sonnet-4-5"

DEFAULT_PROVIDER = os.getenv("DEFAULT_PROVIDER", "openai")
DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", OPENAI_MINI)

# Seconds before a single LLM request is abandoned.
LLM_REQUEST_TIMEOUT = float(os.getenv("LLM_REQUEST_TIMEOUT", "45"))

# ---------------------------------------------------------------------------
# Per-task model assignments
#
# Override any task via env: QUERY_SYNTHESIZER_PROVIDER=anthropic
#                            QUERY_SYNTHESIZER_MODEL=claude-sonnet-4-5
# ---------------------------------------------------------------------------
LLM_TASK_CONFIG: dict[str, dict] = {
    # Short, specific search queries; cheap model is plenty
    "query_synthesizer": {
        "provider": os.getenv("QUERY_SYNTHESIZER_PROVIDER", DEFAULT_PROVIDER),
        "model": os.getenv("QUERY_SYNTHESIZER_MODEL", DEFAULT_MODEL),
        "temperature": 0.4,
        "max_tokens": 600,
    },
    # "People Also Ask" question/snippet pairs
    "people_also_ask": {
        "provider": os.getenv("PEOPLE_ALSO_ASK_PROVIDER", DEFAULT_PROVIDER),
        "model": os.getenv("PEOPLE_ALSO_ASK_MODEL", DEFAULT_MODEL),
        "temperature": 0.6,
        "max_tokens": 1_200,
    },
}


def get_llm_config(task: str) -> dict:
    """Return the LLM config for a pipeline task, with defaults."""
    defaults = {
        "provider": DEFAULT_PROVIDER,
        "model": DEFAULT_MODEL,
        "temperature": 0.5,
        "max_tokens": 1_000,
    }
    task_conf = LLM_TASK_CONFIG.get(task, {})
    return {**defaults, **task_conf}


# ---------------------------------------------------------------------------
# Source credentials
# ---------------------------------------------------------------------------
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY", "")
GOOGLE_SEARCH_API_KEY = os.getenv("GOOGLE_SEARCH_API_KEY", GOOGLE_API_KEY)
GOOGLE_CSE_ID = os.getenv("GOOGLE_CSE_ID", "")
REDDIT_USER_AGENT = os.getenv("REDDIT_USER_AGENT", "MarketIntelSentiment/1.0")


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# Market intel pipeline
# ---------------------------------------------------------------------------
MARKET_INTEL_ENABLE_YOUTUBE = _env_flag("MARKET_INTEL_ENABLE_YOUTUBE")
MARKET_INTEL_ENABLE_DISCUSSIONS = _env_flag("MARKET_INTEL_ENABLE_DISCUSSIONS")
MARKET_INTEL_ENABLE_REDDIT = _env_flag("MARKET_INTEL_ENABLE_REDDIT")
MARKET_INTEL_ENABLE_PEOPLE_ALSO_ASK = _env_flag("MARKET_INTEL_ENABLE_PEOPLE_ALSO_ASK")

MARKET_INTEL_DEFAULT_QUOTE_COUNT = int(os.getenv("MARKET_INTEL_DEFAULT_QUOTE_COUNT", "30"))
MARKET_INTEL_RELEVANCE_THRESHOLD = int(os.getenv("MARKET_INTEL_RELEVANCE_THRESHOLD", "40"))

# Total comments requested from YouTube, spread across the synthesized queries.
MARKET_INTEL_YOUTUBE_COMMENT_BUDGET = int(os.getenv("MARKET_INTEL_YOUTUBE_COMMENT_BUDGET", "40"))
MARKET_INTEL_YOUTUBE_VIDEOS_PER_QUERY = int(os.getenv("MARKET_INTEL_YOUTUBE_VIDEOS_PER_QUERY", "3"))
MARKET_INTEL_DISCUSSION_MAX_RESULTS = int(os.getenv("MARKET_INTEL_DISCUSSION_MAX_RESULTS", "20"))
MARKET_INTEL_REDDIT_SUBREDDIT_LIMIT = int(os.getenv("MARKET_INTEL_REDDIT_SUBREDDIT_LIMIT", "3"))
MARKET_INTEL_REDDIT_POSTS_PER_SUBREDDIT = int(os.getenv("MARKET_INTEL_REDDIT_POSTS_PER_SUBREDDIT", "25"))

# Fixed delay between consecutive calls to the same upstream (seconds).
MARKET_INTEL_YOUTUBE_DELAY_SECONDS = float(os.getenv("MARKET_INTEL_YOUTUBE_DELAY_SECONDS", "1.0"))
MARKET_INTEL_REDDIT_DELAY_SECONDS = float(os.getenv("MARKET_INTEL_REDDIT_DELAY_SECONDS", "0.5"))

MARKET_INTEL_REQUEST_TIMEOUT_SECONDS = float(os.getenv("MARKET_INTEL_REQUEST_TIMEOUT_SECONDS", "20"))
MARKET_INTEL_RUN_TIMEOUT_SECONDS = float(os.getenv("MARKET_INTEL_RUN_TIMEOUT_SECONDS", "120"))

# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
