"""
Domain errors raised by the settlement services.

Services raise these directly; the API layer turns them into HTTP responses
through the handler registered in ``marketplace.main``.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse

class MarketplaceError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

class InvalidArgument(MarketplaceError):
    default_detail = "Invalid argument"

class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"

class AlreadyExists(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already exists"

class Unauthorized(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"

class InvalidPricingModel(MarketplaceError):
    default_detail = "Content cannot be purchased"

class MissingPrice(MarketplaceError):
    default_detail = "Content price not set"

class AlreadyPurchased(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Content already purchased"

class AlreadySubscribed(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Already subscribed to this creator"

class SubscriptionNotOffered(MarketplaceError):
    default_detail = "Creator does not offer subscriptions"

class NotActive(MarketplaceError):
    default_detail = "Subscription is not active"

class BelowMinimumPayout(MarketplaceError):
    default_detail = "Payout amount is below the minimum"

class InsufficientBalance(MarketplaceError):
    default_detail = "Payout amount exceeds available balance"

class PaymentFailed(MarketplaceError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_detail = "Payment failed"

async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
