from typing import Optional

from fastapi import FastAPI

from setkeeper import __version__
from setkeeper.api.auth.routes import router as auth_router
from setkeeper.api.sets.routes import router as sets_router
from setkeeper.api.spotify.routes import router as spotify_router
from setkeeper.bootstrap import Services, build_services
from setkeeper.core import configure_logging


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title="Setkeeper API",
        version=__version__,
        description="Shared, editable Spotify song collections.",
    )
    app.state.services = services or build_services()

    # Set routes
    app.include_router(sets_router, prefix="/sets", tags=["sets"])

    # Spotify account & catalog routes
    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(spotify_router, prefix="/spotify", tags=["spotify"])
    return app


configure_logging()

app = create_app()
