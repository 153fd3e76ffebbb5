from .comments import router as comments_router
from .episodes import router as episodes_router
from .gallery import router as gallery_router
from .panel_images import router as panel_images_router
from .publish import router as publish_router
from .storyboard import router as storyboard_router

__all__ = [
    "comments_router",
    "episodes_router",
    "gallery_router",
    "panel_images_router",
    "publish_router",
    "storyboard_router",
]
