"""
Health check route.
"""
from fastapi import APIRouter, Depends
from markbin.models import HealthCheck
from markbin.database import PasteDatabase, get_database

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
async def health_check(db: PasteDatabase = Depends(get_database)) -> HealthCheck:
    """
    Health check endpoint.
    Returns 200 with ok=true if application and database are healthy.
    """
    return HealthCheck(ok=db.is_healthy())
