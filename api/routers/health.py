# File: api/routers/health.py
from fastapi import APIRouter


router = APIRouter()


@router.get("/")
async def root():
    return {
        "name": "noBS Backend API",
        "version": "1.0.0",
        "status": "running",
        "auth": "/api/auth/login",
    }


@router.get("/health")
async def health_check():
    return {"status": "ok"}
