from fastapi import APIRouter

from job_intake.modules.job_applications import router as job_applications_router

api_router = APIRouter()

api_router.include_router(job_applications_router, tags=["Job Applications"])
