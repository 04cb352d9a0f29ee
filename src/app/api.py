from fastapi import APIRouter

from app.modules.admissions import decision_router as admissions_decision_router
from app.modules.admissions import router as admissions_router

api_router = APIRouter()

api_router.include_router(admissions_router, prefix="/admissions", tags=["Admissions"])

api_router.include_router(
    admissions_decision_router,
    prefix="/admissions",
    tags=["Admissions - Decisions & Merit Lists"],
)
