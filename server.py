"""Market Intel — Web Server.

FastAPI backend exposing the market intelligence pipeline.

Routes:
    POST /api/market-intel   {profile, quote_count} -> report JSON
    GET  /api/health         configured capabilities

Usage:
    python server.py
    # Then POST to http://localhost:8000/api/market-intel
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import config
from pipeline.market_intel import InvalidProfileError, MarketIntelPipeline

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def _check_api_keys() -> list[str]:
    """Check which providers and sources are configured. Returns list of warnings."""
    warnings = []
    key_map = {
        "openai": config.OPENAI_API_KEY,
        "anthropic": config.ANTHROPIC_API_KEY,
        "google": config.GOOGLE_API_KEY,
    }
    provider = config.DEFAULT_PROVIDER
    if not key_map.get(provider):
        warnings.append(
            f"DEFAULT_PROVIDER is '{provider}' but {provider.upper()}_API_KEY is not set; "
            "queries will use the fallback templates"
        )
    if config.MARKET_INTEL_ENABLE_YOUTUBE and not config.YOUTUBE_API_KEY:
        warnings.append("YOUTUBE_API_KEY is not set; YouTube comments are skipped")
    if config.MARKET_INTEL_ENABLE_DISCUSSIONS and not (config.GOOGLE_SEARCH_API_KEY and config.GOOGLE_CSE_ID):
        warnings.append("GOOGLE_SEARCH_API_KEY / GOOGLE_CSE_ID are not set; discussion search is skipped")
    return warnings


def _capabilities() -> dict[str, bool]:
    return {
        "generation": bool(
            {"openai": config.OPENAI_API_KEY, "anthropic": config.ANTHROPIC_API_KEY,
             "google": config.GOOGLE_API_KEY}.get(config.DEFAULT_PROVIDER)
        ),
        "youtube": config.MARKET_INTEL_ENABLE_YOUTUBE and bool(config.YOUTUBE_API_KEY),
        "discussions": config.MARKET_INTEL_ENABLE_DISCUSSIONS
        and bool(config.GOOGLE_SEARCH_API_KEY and config.GOOGLE_CSE_ID),
        "reddit": config.MARKET_INTEL_ENABLE_REDDIT,
        "people_also_ask": config.MARKET_INTEL_ENABLE_PEOPLE_ALSO_ASK,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    key_warnings = _check_api_keys()
    if key_warnings:
        logger.warning("=" * 60)
        logger.warning("API KEY WARNINGS:")
        for w in key_warnings:
            logger.warning("  • %s", w)
        logger.warning("Copy .env.example to .env and add your keys")
        logger.warning("=" * 60)
    else:
        logger.info("API keys: all capabilities configured")
    yield


app = FastAPI(title="Market Intel", version="1.0.0", lifespan=lifespan)


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

class MarketIntelRequest(BaseModel):
    profile: dict[str, Any] = {}
    quote_count: Optional[int] = Field(None, description="Maximum quotes in the report")


@app.post("/api/market-intel")
async def api_market_intel(req: MarketIntelRequest):
    """Run one market intelligence pass and return the report."""
    quote_count = req.quote_count
    if quote_count is None:
        quote_count = config.MARKET_INTEL_DEFAULT_QUOTE_COUNT
    if quote_count <= 0:
        return JSONResponse({"error": "quote_count must be positive"}, status_code=400)

    pipeline = MarketIntelPipeline.from_config()
    try:
        report = await pipeline.run(req.profile, quote_count)
    except InvalidProfileError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    logger.info(
        "Market intel: %d quotes, status=%s", report.source_stats.total_quotes, report.status.value
    )
    return report.model_dump(mode="json")


@app.get("/api/health")
async def api_health():
    """Report which capabilities this server can use."""
    return {"status": "ok", "capabilities": _capabilities()}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn
    print("\n  Market Intel API")
    print("  http://localhost:8000\n")
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
