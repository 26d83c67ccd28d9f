from fastapi import APIRouter
from medcompat.api.endpoints import compatibility, medicines

api_router = APIRouter()

# Register the endpoints
api_router.include_router(compatibility.router, tags=["Compatibility"])
api_router.include_router(medicines.router, tags=["Medicine Catalog"])
