from fastapi import APIRouter
from app.api.crm import ai, customers, leads, properties, reach, tasks

router = APIRouter()
router.include_router(customers.router, prefix="/customers", tags=["Customers"])
router.include_router(properties.router, prefix="/properties", tags=["Properties"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(reach.router, prefix="/reach", tags=["Reach"])
router.include_router(ai.router, prefix="/ai", tags=["AI"])
router.include_router(leads.router, prefix="/leads", tags=["Leads"])
