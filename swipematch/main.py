from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from swipematch.core.config import settings
from swipematch.core.logging import configure_logging, request_context_middleware
from swipematch.core.cache import close_redis_pool
from swipematch.core.hub import notification_hub
from swipematch.core.hub_relay import hub_relay
from swipematch.api.v1 import swipes, matches, chat, users, websocket

configure_logging(settings.app_env)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: subscribe to the hub relay channel when relaying is enabled.
    Shutdown: stop the relay listener and release the Redis pool.
    """
    if settings.hub_relay_enabled:
        await hub_relay.start()
    yield
    await hub_relay.stop()
    await close_redis_pool()


app = FastAPI(
    title="SwipeMatch API",
    description="Two-sided swipe matching between job seekers and recruiters with real-time delivery",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_context_middleware)

# Include API routers
app.include_router(swipes.router, prefix="/api/v1/swipes", tags=["Swipes"])
app.include_router(matches.router, prefix="/api/v1/matches", tags=["Matches"])
app.include_router(chat.router, prefix="/api/v1/chat", tags=["Chat"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
# WebSocket endpoint for real-time events
app.include_router(websocket.router, prefix="/api/v1", tags=["WebSocket"])


@app.get("/healthz")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "version": "1.0.0",
        "realtime": {
            **notification_hub.get_connection_count(),
            "relay": hub_relay.running,
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "SwipeMatch API", "docs": "/docs"}
