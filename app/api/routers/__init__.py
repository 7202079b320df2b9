"""
app/api/routers package marker.
"""

from app.api.routers.business_rules import router as business_rules_router
from app.api.routers.clean_and_score import router as clean_and_score_router
from app.api.routers.google_sheets import router as google_sheets_router
from app.api.routers.summary import router as summary_router

__all__ = [
    "business_rules_router",
    "clean_and_score_router",
    "google_sheets_router",
    "summary_router",
]
