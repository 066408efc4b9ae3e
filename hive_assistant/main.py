"""
main.py
-------
FastAPI application entrypoint.

Registers the routers and configures CORS and logging.

Run with:
    uvicorn hive_assistant.main:app --reload --port 8000

Swagger UI: http://localhost:8000/docs
"""
from __future__ import annotations

import logging
import os

import dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

dotenv.load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)

from hive_assistant.config import get_config
from hive_assistant.routers.chat_router import router as chat_router
from hive_assistant.routers.context_router import router as context_router

app = FastAPI(
    title="HIVE Assistant API",
    description=(
        "Context assembly and tool orchestration for the HIVE community assistant: "
        "builds a per-user snapshot of the community, runs a bounded tool loop "
        "against the chat model and returns the answer as JSON or SSE."
    ),
    version="1.0.0",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(chat_router)      # POST /chat, POST /chat/title
app.include_router(context_router)   # POST /context/preview, DELETE /context/summaries/...


@app.get("/", tags=["root"])
def root():
    return {
        "service": "HIVE Assistant API",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", tags=["root"])
def health():
    config = get_config()
    return {
        "status": "ok",
        "supabase_configured": config.supabase_configured,
        "chat_model": config.chat_model,
        "summary_model": config.summary_model,
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
