from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging
from app.middleware.execution import ExecutionContextMiddleware, ExecutionMiddlewareConfig
from app.api.executions import router as api_router

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield

def create_app(config: Optional[ExecutionMiddlewareConfig] = None) -> FastAPI:
    """
    Build the service.

    Args:
        config: Execution middleware config. Defaults to settings.
    """
    if config is None:
        config = ExecutionMiddlewareConfig(
            repo_name=settings.repo_name,
            enforce=settings.execution_enforce,
        )

    app = FastAPI(
        title=settings.service_name,
        lifespan=lifespan
    )

    # Execution context for every externally invoked operation
    app.add_middleware(ExecutionContextMiddleware, config=config)
    register_exception_handlers(app)

    app.include_router(api_router, prefix="/v1")

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": settings.service_name}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
