"""Typed failures raised by the reservation, chat and sale services.

Every error is an ``HTTPException`` so routes can let it propagate untouched,
while the services and tests match on the concrete class and ``category``.
"""

from fastapi import HTTPException


class MarketplaceError(HTTPException):
    status_code = 400
    category = "bad_request"

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)

    def as_dict(self) -> dict:
        return {"success": False, "category": self.category, "error": self.detail}


class NotFoundError(MarketplaceError):
    status_code = 404
    category = "not_found"


class ForbiddenError(MarketplaceError):
    status_code = 403
    category = "forbidden"


class BadRequestError(MarketplaceError):
    status_code = 400
    category = "bad_request"


class ConflictError(MarketplaceError):
    status_code = 409
    category = "conflict"


class ExternalServiceError(MarketplaceError):
    status_code = 502
    category = "external_failure"


class UnconfiguredError(MarketplaceError):
    status_code = 500
    category = "unconfigured"
