"""Main FastAPI application."""

import logging

import redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gangsheet_api.api.v1 import api_router
from gangsheet_api.config import settings
from gangsheet_api.database import engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="Gangsheet Service",
    description="Multi-tenant gangsheet generation for DTF printing",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/v1")


@app.get("/health")
async def health_check():
    """Report database and Redis connectivity."""
    db_status = "disconnected"
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_status = "connected"
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"

    redis_status = "disconnected"
    try:
        redis.from_url(settings.redis_url).ping()
        redis_status = "connected"
    except redis.RedisError as e:
        redis_status = f"error: {str(e)}"

    overall_status = "ok" if db_status == "connected" and redis_status == "connected" else "degraded"

    return {
        "status": overall_status,
        "db": db_status,
        "redis": redis_status,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gangsheet_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
