"""API routers."""
from .status_page import router as status_page_router

__all__ = ["status_page_router"]
