from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import MarketplaceError
from .friendly_msg import get_friendly_message


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):
        errors = []

        for err in exc.errors():
            errors.append(
                {
                    "loc": err.get("loc"),
                    "msg": str(err.get("msg")),
                    "type": err.get("type"),
                }
            )

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "category": "bad_request",
                "error": "Validation failed",
                "details": errors,
            },
        )


class MarketplaceErrorHandler:
    async def __call__(self, request: Request, exc: MarketplaceError):
        content = exc.as_dict()
        content["error"] = get_friendly_message(exc)
        return JSONResponse(status_code=exc.status_code, content=content)
