"""Field types, uploads and submission lifecycle routes"""

from fastapi import APIRouter
from . import field_types, uploads, submissions

router = APIRouter()

router.include_router(field_types.router, prefix="/field-types", tags=["Field Types"])
router.include_router(uploads.router, prefix="/forms", tags=["Uploads"])
router.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
