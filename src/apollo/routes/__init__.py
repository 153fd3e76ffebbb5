from apollo.routes import health
from apollo.routes.library import router as library_router
from apollo.routes.toon import (
    comments_router,
    episodes_router,
    gallery_router,
    panel_images_router,
    publish_router,
    storyboard_router,
)

__all__ = [
    "comments_router",
    "episodes_router",
    "gallery_router",
    "health",
    "library_router",
    "panel_images_router",
    "publish_router",
    "storyboard_router",
]
