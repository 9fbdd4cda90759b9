from fastapi import FastAPI

from app.branchflow.api import api_router
from app.branchflow.core.config import settings
from app.branchflow.core.errors import setup_exception_handlers
from app.branchflow.core.logging import configure_logging
from app.branchflow.middleware.observability import ObservabilityMiddleware
from app.branchflow.middleware.principal import PrincipalContextMiddleware
from app.branchflow.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(PrincipalContextMiddleware)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
