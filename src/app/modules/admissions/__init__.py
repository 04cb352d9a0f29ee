from app.modules.admissions.decision_router import router as decision_router
from app.modules.admissions.router import router

__all__ = ["decision_router", "router"]
