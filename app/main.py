from fastapi import FastAPI
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.routers.debug import router as debug_router
from app.routers.echo import router as echo_router
from app.routers.health import router as health_router
from app.core.middleware import RequestIdMiddleware

from fastapi.exceptions import RequestValidationError

from app.core.exceptions import AppError
from app.core.handlers import (
    app_error_handler,
    validation_error_handler,
    unhandled_exception_handler,
)

configure_logging(get_settings())

app = FastAPI(
    title="cardiastrain-backend",
    description="FastAPI backend for echocardiography strain and biplane EF analysis.",
    version="0.1.0",
)


app.add_middleware(RequestIdMiddleware)


app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Routers
app.include_router(health_router)
app.include_router(echo_router)
app.include_router(debug_router)
