import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from adboard.cache import cache
from adboard.config import settings
from adboard.logging_config import setup_logging
from adboard.middleware import TimingMiddleware
from adboard.routers import listings, metrics, users

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    # Redis is optional; CacheManager degrades to a no-op when unreachable
    await cache.connect()
    logger.info("adboard started (env=%s)", settings.APP_ENV)
    yield
    await cache.disconnect()

app = FastAPI(
    title="Adboard API",
    description="Classified-ad listings with owner-or-admin access control",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(listings.router)
app.include_router(users.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
