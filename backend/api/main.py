import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import TypeAdapter

from common.core.config import settings
from api.v1.routes.router import api_router
from common.db.session import init_db
from packages.razorpay.models.domain.plans import RazorpayPlan
from packages.razorpay.plugin import RazorpayOptions, RazorpayPlugin

# Initialize Axiom OpenTelemetry exporter (must be first)
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from common.core.otel_axiom_exporter import (
    _initialize_telemetry,
    get_logger,
)  # noqa


_initialize_telemetry()
# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Get logger
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting application...")
    await init_db()
    logger.info("Database initialized")
    yield
    # Shutdown
    logger.info("Shutting down application...")


def plugin_from_settings() -> RazorpayPlugin:
    """Plugin configured from environment; hooks need a host-built plugin."""
    plans = TypeAdapter(list[RazorpayPlan]).validate_json(settings.razorpay_plans)
    return RazorpayPlugin(
        RazorpayOptions(
            plans=plans,
            organization_enabled=settings.razorpay_organization_enabled,
            require_email_verification=settings.razorpay_require_email_verification,
            create_customer_on_signup=settings.razorpay_create_customer_on_signup,
        )
    )


def create_app(plugin: Optional[RazorpayPlugin] = None) -> FastAPI:
    # Only expose OpenAPI docs in local development
    is_local = settings.environment.is_local()

    app = FastAPI(
        title=settings.app_name,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url="/docs" if is_local else None,
        redoc_url="/redoc" if is_local else None,
        openapi_url="/openapi.json" if is_local else None,
    )

    # Instrument FastAPI with OpenTelemetry
    FastAPIInstrumentor.instrument_app(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api/v1")

    # Subscription actions (session auth) and the Razorpay webhook (signature auth)
    (plugin or plugin_from_settings()).install(app, prefix="/api/v1")

    # Internal health endpoint for k8s probes - not under /api/v1 to avoid external spam
    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"status": "ok"}

    return app


app = create_app()
