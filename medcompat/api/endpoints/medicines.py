from typing import List, Optional
from fastapi import APIRouter, Query

from medcompat.schemas.medicine import Alternative, CatalogMedicine
from medcompat.services.catalog import search_medicines, suggest_alternatives

router = APIRouter()


@router.get("/medicines", response_model=List[CatalogMedicine])
async def list_medicines(q: str = Query("", description="Matches name, generic name or drug class")):
    return search_medicines(q)


@router.get("/medicines/alternatives", response_model=List[Alternative])
async def list_alternatives(
    drug_class: str = Query(..., min_length=1),
    exclude_id: Optional[str] = None,
):
    """
    Unknown drug classes yield an empty list, not a 404.
    """
    return suggest_alternatives(drug_class, exclude_id)
