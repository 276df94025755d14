"""API routes."""

from fastapi import APIRouter

from crm.api.routes import auth, customer_delete_requests, customers, user_approvals

api_router = APIRouter()

# Public routes (no auth required)
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# Protected routes (auth required)
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(
    customer_delete_requests.router,
    prefix="/customer-delete-requests",
    tags=["customer-delete-requests"],
)
api_router.include_router(
    user_approvals.router, prefix="/admin/user-approvals", tags=["admin"]
)
