import logging
from functools import wraps

from fastapi import HTTPException, Request

from .errors import MarketplaceError
from .friendly_msg import get_friendly_message

logger = logging.getLogger(__name__)


def _request_context(args, kwargs) -> str:
    for arg in list(args) + list(kwargs.values()):
        if isinstance(arg, Request):
            client_ip = arg.client.host if arg.client else "unknown"
            trace_id = arg.headers.get("X-Request-ID", "none")
            return f"TraceID={trace_id} | {arg.url.path} from {client_ip}"
    return "no request context"


def safe_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except MarketplaceError as e:
            logger.info(
                f"[{e.category}] {func.__name__} | {_request_context(args, kwargs)}: {e.detail}"
            )
            raise
        except HTTPException as e:
            logger.warning(
                f"[HTTPException] {func.__name__} | {_request_context(args, kwargs)}: "
                f"{e.status_code} - {e.detail}"
            )
            raise
        except Exception as e:
            logger.error(
                f"[Unhandled Error] in {func.__name__} | {_request_context(args, kwargs)} | Error: {e}",
                exc_info=True,
            )
            raise HTTPException(status_code=500, detail=get_friendly_message(e))

    return wrapper
