import os
import logfire

from dotenv import load_dotenv

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from contextlib import asynccontextmanager

from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

from models.users import User
from models.videos import Video
from models.tweets import Tweet
from models.comments import Comment
from models.playlists import Playlist

from routers import auth, users, videos, tweets, comments, playlists

from security.credentials import get_credential_manager

from utils.exceptions import register_exception_handlers
from utils.logger import configure_logfire, instrument_libraries


# Load environment variables first
load_dotenv()

# Configure logfire BEFORE creating FastAPI app
configure_logfire()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logfire.info("Starting VideoTube application...")

    # Fail fast on missing or identical token secrets
    get_credential_manager()

    instrument_libraries()

    timeout_ms = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))
    client = AsyncIOMotorClient(
        os.getenv("DATABASE_CONNECTION_STRING"),
        serverSelectionTimeoutMS=timeout_ms,
        socketTimeoutMS=timeout_ms,
    )  # * Connect to MongoDB

    await init_beanie(
        database=client[os.getenv("DATABASE_NAME", "videotube")],
        document_models=[User, Video, Tweet, Comment, Playlist],
    )
    logfire.info("Database initialized successfully")

    yield

    logfire.info("Shutting down VideoTube application...")
    client.close()
    logfire.info("Application shutdown complete")


app = FastAPI(
    title="VideoTube API",
    description="Backend for a video sharing platform: accounts, sessions, videos, tweets, comments and playlists.",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in os.getenv("CORS_ORIGIN", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["127.0.0.1"])
app.add_middleware(GZipMiddleware, minimum_size=500)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(videos.router)
app.include_router(tweets.router)
app.include_router(comments.router)
app.include_router(playlists.router)
