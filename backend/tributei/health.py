import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select, text

from tributei.db.main import get_session
from tributei.products.models import Product

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/health")
async def health_check():
    """Basic health check without database"""
    return {
        "status": "ok",
        "service": "tributei-api"
    }

@router.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_session)):
    """Health check with database connection test and catalog size"""
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()

        result = await db.execute(select(func.count()).select_from(Product))
        products_count = result.scalar()

        return {
            "status": "ok",
            "database": "connected",
            "products_count": products_count
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return {
            "status": "error",
            "database": "disconnected",
            "error": str(e)
        }
