"""
app/api/routers package marker.
"""

from app.api.routers.export_router import router as export_router

__all__ = [
    "export_router",
]
