# src/main.py

import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded
from src.common.cache import build_cache
from src.common.database.database import connect_to_db, close_db_connection
from src.common.config import settings
from src.common.rate_limit import SuggestionRateLimiter, limiter
from src.router.routers import include_routers

# Centralized logging configuration
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_db()
    app.state.suggestion_cache = build_cache(settings.CACHE_URL)
    app.state.suggestion_rate_limiter = SuggestionRateLimiter()
    yield
    await app.state.suggestion_cache.close()
    await close_db_connection()

# Initialize FastAPI app with lifespan manager
app = FastAPI(
    title="Learning Platform Search API",
    description="Search, autocomplete and filter catalog for courses, lessons, articles, resources and teachers.",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Middleware for CORS using allowed origins from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers from a separate file
include_routers(app)

# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "ok", "message": "API is running"}
