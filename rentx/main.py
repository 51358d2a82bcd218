import time

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sqlalchemy import text

from .config import settings
from .database import dispose_engine, engine
from .errors import AppError, app_error_handler, http_exception_handler
from .middleware_request_id import RequestIDMiddleware
from .models import Base
from .routers import admin as admin_router
from .routers import auth as auth_router
from .routers import bookings as bookings_router
from .routers import vehicles as vehicles_router
from .sweeper import AvailabilitySweeper


REQ = Counter("http_requests_total", "HTTP requests", ["method", "path", "status"])
REQ_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)


def create_app() -> FastAPI:
    app = FastAPI(title="RentX API", version="0.1.0", docs_url="/docs")

    allowed_origins = settings.ALLOWED_ORIGINS or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    if settings.AUTO_CREATE_SCHEMA:
        Base.metadata.create_all(bind=engine)

    @app.get("/health")
    def health():
        with engine.connect() as conn:
            conn.execute(text("select 1"))
        return {"status": "ok", "env": settings.ENV}

    @app.middleware("http")
    async def _metrics_mw(request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start
        try:
            route = getattr(request.scope.get("route"), "path", None) or request.url.path
            REQ.labels(request.method, route, str(response.status_code)).inc()
            REQ_DURATION.labels(request.method, route).observe(duration)
        except Exception:
            pass
        return response

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(auth_router.router)
    app.include_router(vehicles_router.router)
    app.include_router(bookings_router.router)
    app.include_router(admin_router.router)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    sweeper = AvailabilitySweeper()
    app.state.sweeper = sweeper

    if settings.SWEEPER_ENABLED:
        @app.on_event("startup")
        async def _start_sweeper():
            sweeper.start()

    @app.on_event("shutdown")
    async def _shutdown():
        sweeper.stop()
        dispose_engine()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT)
