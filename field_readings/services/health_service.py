# field_readings/services/health_service.py
from typing import Dict, Any
from datetime import datetime, timezone
import psutil
import platform
from field_readings.database import check_db_connection
import logging

logger = logging.getLogger(__name__)


async def get_detailed_health() -> Dict[str, Any]:
    """Database reachability plus host metrics"""
    health_status = {
        "services": {},
        "system": {},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    # DB
    try:
        db_healthy = await check_db_connection()
        health_status["services"]["database"] = {
            "healthy": db_healthy,
            "status": "connected" if db_healthy else "disconnected",
        }
    except Exception as e:
        health_status["services"]["database"] = {"healthy": False, "error": str(e)}

    # System
    try:
        process = psutil.Process()
        health_status["system"] = {
            "cpu_percent": psutil.cpu_percent(interval=None),
            "memory_percent": psutil.virtual_memory().percent,
            "process_rss_bytes": process.memory_info().rss,
            "python_version": platform.python_version(),
            "platform": platform.platform(),
        }
    except psutil.Error as e:
        logger.error(f"Failed to get system metrics: {e}")

    all_services_healthy = all(s.get("healthy", False) for s in health_status["services"].values())
    health_status["overall_health"] = "healthy" if all_services_healthy else "degraded"

    return health_status
