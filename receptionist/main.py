"""Main FastAPI application."""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from receptionist.api import business, chat, conversations, health
from receptionist.api.webhooks import stream, voice
from receptionist.core.config import settings
from receptionist.core.dependencies import create_session_reaper, get_call_session_manager
from receptionist.core.logging import setup_logging
from receptionist.db.database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    reaper = create_session_reaper(settings, get_call_session_manager())
    reaper.start()
    yield
    # Shutdown
    await reaper.stop()


app = FastAPI(
    title="AI Receptionist",
    description="AI receptionist answering phone calls and chat for small businesses",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(business.router, tags=["business"])
app.include_router(chat.router, tags=["chat"])
app.include_router(conversations.router, tags=["conversations"])
app.include_router(voice.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(stream.router, prefix="/webhooks", tags=["webhooks"])


@app.get("/")
async def root():
    return {"message": "AI Receptionist API", "version": "0.1.0"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("receptionist.main:app", host=settings.host, port=settings.port)
