# serialtrack/api/api.py

from fastapi import APIRouter

from serialtrack.api.endpoints import (
    auth,
    cancellations,
    dashboard,
    demos,
    imports,
    inventory,
    monthly,
    orders,
    reports,
    stock,
    users,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["Inventory"])
api_router.include_router(stock.router, prefix="/stock", tags=["Stock"])
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
api_router.include_router(cancellations.router, prefix="/cancellations", tags=["Cancellations"])
api_router.include_router(demos.router, prefix="/demos", tags=["Demos"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
api_router.include_router(monthly.router, prefix="/monthly", tags=["Monthly Activity"])
api_router.include_router(imports.router, prefix="/imports", tags=["Imports"])
