"""
Factory functions for product resolution services.

Services get their AsyncSession through FastAPI DI; tests override
get_session to point them at an in-memory database.
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tributei.config import settings
from tributei.db.main import get_session
from tributei.products.services import CascadeResolver, ProductCatalogService, ProductResolver


async def get_catalog_service(session: Annotated[AsyncSession, Depends(get_session)]) -> ProductCatalogService:
    return ProductCatalogService(session)


async def get_product_resolver(
    catalog: Annotated[ProductCatalogService, Depends(get_catalog_service)]
) -> ProductResolver:
    return ProductResolver(catalog, results_limit=settings.SEARCH_RESULTS_LIMIT)


async def get_cascade_resolver(
    resolver: Annotated[ProductResolver, Depends(get_product_resolver)]
) -> CascadeResolver:
    return CascadeResolver(resolver)


ResolverDependency = Annotated[ProductResolver, Depends(get_product_resolver)]
CascadeDependency = Annotated[CascadeResolver, Depends(get_cascade_resolver)]
