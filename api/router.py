from fastapi import APIRouter

from api.v1.auth import router as auth_router
from api.v1.expenses import router as expenses_router
from api.v1.feedback import router as feedback_router
from api.v1.participants import router as participants_router
from api.v1.programs import router as programs_router
from api.v1.registrations import router as registrations_router
from api.v1.reports import router as reports_router
from api.v1.users import router as users_router

router = APIRouter()

# Include v1 routers
router.include_router(auth_router, prefix="/v1")
router.include_router(users_router, prefix="/v1")
router.include_router(programs_router, prefix="/v1")
router.include_router(participants_router, prefix="/v1")
router.include_router(registrations_router, prefix="/v1")

# Budget features
router.include_router(expenses_router, prefix="/v1")
router.include_router(reports_router, prefix="/v1")

router.include_router(feedback_router, prefix="/v1")
