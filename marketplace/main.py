import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketplace.core.config import settings
from marketplace.core.errors import MarketplaceError, marketplace_error_handler
from marketplace.core.middleware import RateLimitMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_exception_handler(MarketplaceError, marketplace_error_handler)

@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API", "docs": "/docs"}

from marketplace.modules.auth.router import router as auth_router
from marketplace.modules.creators.router import router as creators_router
from marketplace.modules.cms.router import router as content_router
from marketplace.modules.sales.router import router as sales_router
from marketplace.modules.subscriptions.router import router as subscriptions_router
from marketplace.modules.payouts.router import router as payouts_router
from marketplace.modules.ledger.router import router as ledger_router

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(
    RateLimitMiddleware,
    limit_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    strict_limit_per_minute=settings.PAYMENT_RATE_LIMIT_PER_MINUTE,
)

app.include_router(auth_router, prefix=f"{settings.API_V1_STR}/auth", tags=["auth"])
app.include_router(creators_router, prefix=f"{settings.API_V1_STR}/creators", tags=["creators"])
app.include_router(content_router, prefix=f"{settings.API_V1_STR}/content", tags=["content"])
app.include_router(sales_router, prefix=f"{settings.API_V1_STR}/sales", tags=["sales"])
app.include_router(subscriptions_router, prefix=f"{settings.API_V1_STR}/subscriptions", tags=["subscriptions"])
app.include_router(payouts_router, prefix=f"{settings.API_V1_STR}/payouts", tags=["payouts"])
app.include_router(ledger_router, prefix=f"{settings.API_V1_STR}/ledger", tags=["ledger"])
