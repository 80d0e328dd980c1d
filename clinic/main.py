from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware

import clinic.db.base  # noqa: F401  registers every model on Base.metadata
from clinic.api.main import api_router
from clinic.core.logging import configure_logging, get_logger
from clinic.core.security import CSPMiddleware
from clinic.core.settings import Env, settings
from clinic.middlewares.telemetry import RequestContextMiddleware
from clinic.version import APP_NAME, APP_VERSION, version_info

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": (
        "accelerometer=(), camera=(), geolocation=(), gyroscope=(), "
        "magnetometer=(), microphone=(), payment=(), usb=()"
    ),
}
HSTS = "max-age=15552000; includeSubDomains; preload"


def cors_origins(raw: str) -> list[str]:
    """Comma separated hosts; bare hosts are allowed over http and https."""
    origins: list[str] = []
    for item in (h.strip() for h in raw.split(",")):
        if not item:
            continue
        if item.startswith(("http://", "https://")):
            origins.append(item)
        else:
            origins.extend((f"http://{item}", f"https://{item}"))
    return origins


def create_app() -> FastAPI:
    prod = settings.APP_ENV == Env.PROD
    configure_logging(
        json=settings.LOG_JSON,
        level=settings.LOG_LEVEL,
        app=APP_NAME,
        env=settings.APP_ENV.value,
    )

    app = FastAPI(title=APP_NAME, version=APP_VERSION, debug=settings.DEBUG)

    # outermost last: request context wraps everything below it
    app.add_middleware(CSPMiddleware)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if prod:
            response.headers["Strict-Transport-Security"] = HSTS
        return response

    if prod:
        app.add_middleware(HTTPSRedirectMiddleware)

    origins = cors_origins(settings.ALLOWED_HOSTS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=(origins or ["*"]) if settings.DEBUG else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(api_router)

    @app.get("/healthz", tags=["ops"])
    def healthz():
        get_logger().info("health.check")
        return {"status": "ok", "env": settings.APP_ENV, "version": APP_VERSION}

    @app.get("/version", tags=["ops"])
    def version():
        return {**version_info(), "env": settings.APP_ENV, "debug": settings.DEBUG}

    get_logger().info("app.created", prod=prod, cors_origins=len(origins))
    return app


app = create_app()
