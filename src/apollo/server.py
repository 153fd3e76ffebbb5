import argparse

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from apollo import __version__
from apollo.auth.dependencies import set_config
from apollo.config import ApolloConfig, load_config
from apollo.db import init_db
from apollo.genai_helper import set_genai_client
from apollo.log_config import logger
from apollo.routes import (
    comments_router,
    episodes_router,
    gallery_router,
    health,
    library_router,
    panel_images_router,
    publish_router,
    storyboard_router,
)
from apollo.storage import BlobStore, LocalBlobStore, create_blob_store, set_blob_store

FILES_MOUNT_PATH = "/files"


def create_app(config: ApolloConfig, blob_store: BlobStore | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Service configuration
        blob_store: Store to use instead of the one selected by ``config.storage_backend``

    Returns:
        Configured FastAPI application

    """
    init_db(config.database_url, auto_migrate=config.auto_migrate)
    set_config(config)
    set_genai_client(None)

    store = blob_store or create_blob_store(config)
    set_blob_store(store)

    app = FastAPI(
        title="apollo",
        description="Diary-to-instagram-toon backend: storyboard planning, panel images, gallery and comments",
        version=__version__,
        swagger_ui_parameters={"persistAuthorization": True},
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(storyboard_router)
    app.include_router(panel_images_router)
    app.include_router(publish_router)
    app.include_router(comments_router)
    app.include_router(gallery_router)
    app.include_router(episodes_router)
    app.include_router(library_router)

    if isinstance(store, LocalBlobStore):
        app.mount(FILES_MOUNT_PATH, StaticFiles(directory=store.root), name="files")

    @app.get("/", include_in_schema=False)
    async def redirect_to_docs() -> RedirectResponse:
        """Redirect root requests to interactive API docs."""
        return RedirectResponse(url="/docs")

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the apollo API server")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--host", default=None, help="Override the bind host")
    parser.add_argument("--port", type=int, default=None, help="Override the bind port")
    args = parser.parse_args()

    config = load_config(args.config)
    host = args.host or config.host
    port = args.port or config.port
    logger.info("Starting apollo on %s:%s", host, port)
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    main()
