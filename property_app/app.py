import logging

import uvicorn
from core.catch_error_middleware import ErrorHandlerMiddleware
from core.errors import MarketplaceError
from core.exception_handler import MarketplaceErrorHandler, ValidationErrorHandler
from core.lifespan import lifespan
from core.settings import settings
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from routes.chat_routes import router as chat_router
from routes.faq_chat_routes import router as faq_chat_router
from routes.interest_routes import router as interest_router
from routes.reservation_routes import router as reservation_router
from routes.sales_routes import router as sales_router

logging.basicConfig(level=logging.INFO)
app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version="2.0.0",
)

app.include_router(reservation_router, prefix="/v2/reservations")
app.include_router(chat_router, prefix="/v2/chats")
app.include_router(faq_chat_router, prefix="/v2")
app.include_router(interest_router, prefix="/v2")
app.include_router(sales_router, prefix="/v2/sales")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}


app.add_exception_handler(
    RequestValidationError,
    ValidationErrorHandler(),
)
app.add_exception_handler(
    MarketplaceError,
    MarketplaceErrorHandler(),
)

app.add_middleware(ErrorHandlerMiddleware)


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8001, reload=True)
