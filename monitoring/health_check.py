"""
Health check endpoints for the checkout service.
"""

import os
import psutil
from typing import Dict, Any
from fastapi import APIRouter
from datetime import datetime

from monitoring.metrics import get_metrics_collector
from monitoring.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

SERVICE_VERSION = "1.0.0"

REQUIRED_ENV_VARS = [
    "STRIPE_API_KEY",
]


@router.get("")
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Health status, system stats and checkout metrics
    """
    try:
        metrics = get_metrics_collector().get_metrics()

        # Non-blocking sample: compares against the previous call
        cpu_percent = psutil.cpu_percent(interval=None)
        memory = psutil.virtual_memory()

        health_data = {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "version": SERVICE_VERSION,
            "environment": os.getenv("ENVIRONMENT", "development"),
            "system": {
                "cpu_percent": cpu_percent,
                "memory": {
                    "total_gb": round(memory.total / (1024**3), 2),
                    "available_gb": round(memory.available / (1024**3), 2),
                    "percent": memory.percent,
                },
            },
            "metrics": metrics,
        }

        if cpu_percent > 90 or memory.percent > 90:
            health_data["status"] = "degraded"
            health_data["warnings"] = []

            if cpu_percent > 90:
                health_data["warnings"].append("High CPU usage")
            if memory.percent > 90:
                health_data["warnings"].append("High memory usage")

        return health_data

    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.now().isoformat(),
        }


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """Readiness check: the billing provider must be configured."""
    missing_vars = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]

    if missing_vars:
        return {
            "ready": False,
            "message": f"Missing required environment variables: {', '.join(missing_vars)}",
            "timestamp": datetime.now().isoformat(),
        }

    return {
        "ready": True,
        "message": "Service is ready to accept requests",
        "timestamp": datetime.now().isoformat(),
    }


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    return {
        "alive": "true",
        "timestamp": datetime.now().isoformat(),
    }
