from fastapi import APIRouter

from petalhub.app.api.v1.endpoints.health import router as health_router
from petalhub.app.api.v1.endpoints.users import router as users_router
from petalhub.app.api.v1.endpoints.products import router as products_router
from petalhub.app.api.v1.endpoints.orders import router as orders_router
from petalhub.app.api.v1.endpoints.consolidation import router as consolidation_router
from petalhub.app.api.v1.endpoints.exports import router as exports_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(users_router, tags=["users"])
router.include_router(products_router, tags=["products"])
router.include_router(orders_router, tags=["orders"])
router.include_router(consolidation_router, tags=["consolidation"])
router.include_router(exports_router, tags=["exports"])
