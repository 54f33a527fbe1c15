from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subscribe.core.config import settings
from subscribe.routers import plans, services

OPENAPI_TAGS = [
    {"name": "Plans", "description": "Create plans and preview their billing cycles."},
    {"name": "Services", "description": "Subscribe to plans, record payments and renew services."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Subscription billing API. "
        "Computes billing cycles for daily, monthly, yearly and lifetime plans "
        "and moves subscribed services through trial, grace and past due."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)

app.include_router(plans.router, prefix="/v1/plans", tags=["Plans"])
app.include_router(services.router, prefix="/v1/services", tags=["Services"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
