from fastapi import APIRouter
from hotel_approvals.api.v1.endpoints.notification import notifications
from hotel_approvals.api.v1.endpoints.workflow import requests

api_router = APIRouter()

# Workflow routes
api_router.include_router(requests.router, prefix="/requests", tags=["Requests"])

# Notification routes
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
