"""Checkout service application: `uvicorn server:app`."""
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI  # noqa: E402

from billing.routes import router as checkout_router  # noqa: E402
from monitoring.health_check import router as health_router, SERVICE_VERSION  # noqa: E402
from monitoring.logger import get_logger  # noqa: E402

logger = get_logger("checkout-service")


def create_app() -> FastAPI:
    app = FastAPI(title="Checkout Service", version=SERVICE_VERSION)
    app.include_router(checkout_router)
    app.include_router(health_router)
    logger.info("Checkout service routes registered")
    return app


app = create_app()
