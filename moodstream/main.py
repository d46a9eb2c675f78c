"""
Main application initialization and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from moodstream.api.routes import auth, playlists, tracks
from moodstream.core.exceptions import UpstreamUnavailable, register_exception_handlers
from moodstream.db.session import DATABASE_URL, DB_CREATE_TABLES, Database
from moodstream.dependencies import get_database, get_ingestion_service, get_object_store
from moodstream.services.identity import IdentityResolver
from moodstream.services.ingestion import TrackIngestionService
from moodstream.services.playlists import PlaylistService
from moodstream.services.socketio import SocketIOServer, register_handlers
from moodstream.services.socketio.server import configured_cors_origins
from moodstream.services.supabase.auth import build_identity_provider
from moodstream.services.supabase.storage import SupabaseStorage

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

logging.basicConfig(
    level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(
    database_url: str = DATABASE_URL,
    identity_provider=None,
    object_store=None,
    notifier: Optional[SocketIOServer] = None,
    create_tables: bool = DB_CREATE_TABLES,
) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators default to the environment-configured implementations;
    tests pass their own.
    """
    notifier = notifier or SocketIOServer(cors_origins=configured_cors_origins(CORS_ORIGINS))
    register_handlers(notifier)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(database_url)
        if create_tables:
            await database.create_all()

        resolver = IdentityResolver(database, identity_provider or build_identity_provider())
        store = object_store or SupabaseStorage()

        app.state.database = database
        app.state.object_store = store
        app.state.identity_resolver = resolver
        app.state.ingestion_service = TrackIngestionService(database, store, resolver, notifier)
        app.state.playlist_service = PlaylistService(database, notifier)
        logger.info("MoodStream backend started")

        yield

        await notifier.shutdown()
        await database.dispose()

    app = FastAPI(title="MoodStream API", lifespan=lifespan)
    app.state.notifier = notifier

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
    )

    register_exception_handlers(app)

    # Mount Socket.io server
    notifier.mount_to_fastapi(app, path="/ws")

    # Include routers
    app.include_router(tracks.router)
    app.include_router(playlists.router)
    app.include_router(auth.router)

    @app.get("/")
    def read_root():
        """Return a welcome message at the root endpoint."""
        return {"message": "Backend running"}

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint to verify the API is running."""
        return {"status": "healthy"}

    @app.get("/api/db-test")
    async def db_test(database: Database = Depends(get_database)):
        """Test the database connection."""
        try:
            await database.ping()
            return {"connected": True}
        except SQLAlchemyError as e:
            return {"connected": False, "error": str(e)}

    @app.get("/api/test-storage")
    async def storage_test(
        object_store=Depends(get_object_store),
        service: TrackIngestionService = Depends(get_ingestion_service),
    ):
        """Test the object store by listing the upload bucket."""
        try:
            files = await object_store.list_objects(service.bucket)
        except UpstreamUnavailable as e:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"connected": False, "error": e.message, "detail": e.detail},
            )
        return {
            "connected": True,
            "files": files,
            "sample_image": service.fallback_asset_url,
        }

    return app


app = create_app()
