from fastapi import APIRouter, Query, status

from tributei.common.exceptions import ResourceNotFoundError
from tributei.products.dependencies import ResolverDependency
from tributei.products.schemas import LookupField, ProductRecord, SearchMode, SearchOutcome

router = APIRouter()


@router.get("/search", response_model=SearchOutcome, status_code=status.HTTP_200_OK, summary="Search products")
async def search_products(
    service: ResolverDependency,
    q: str = Query(..., min_length=1, description="Name words or NCM code"),
    mode: SearchMode = Query(SearchMode.NAME, description="Search by name or by NCM")
):
    """
    Search the catalog.

    One hit comes back as 'found' with the full record, several hits as
    'ambiguous' with candidates sorted alphabetically.
    """
    return await service.resolve_query(q, mode)


@router.get("/barcode/{ean}", response_model=ProductRecord, status_code=status.HTTP_200_OK, summary="Get product by barcode")
async def get_product_by_barcode(ean: str, service: ResolverDependency):
    product = await service.get_details(ean, LookupField.BARCODE)
    if not product:
        raise ResourceNotFoundError("Produto", ean)
    return product


@router.get("/{product_id}", response_model=ProductRecord, status_code=status.HTTP_200_OK, summary="Get product by ID")
async def get_product(product_id: int, service: ResolverDependency):
    product = await service.get_details(product_id, LookupField.ID)
    if not product:
        raise ResourceNotFoundError("Produto", product_id)
    return product
