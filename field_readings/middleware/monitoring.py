import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from field_readings.config import settings
from field_readings.monitoring.metrics import request_count, request_duration, active_requests

logger = logging.getLogger(__name__)


class MonitoringMiddleware(BaseHTTPMiddleware):
	"""Track request metrics for Prometheus"""

	async def dispatch(self, request: Request, call_next):
		# Skip metrics endpoint to avoid recursion
		if request.url.path == "/internal/metrics":
			return await call_next(request)

		active_requests.inc()
		start_time = time.time()

		try:
			response = await call_next(request)

			duration = time.time() - start_time

			request_count.labels(
				method=request.method,
				endpoint=request.url.path,
				status=response.status_code
			).inc()

			request_duration.labels(
				method=request.method,
				endpoint=request.url.path
			).observe(duration)

			if duration > settings.SLOW_REQUEST_SECONDS:
				logger.warning(
					f"Slow request: {request.method} {request.url.path} "
					f"took {duration:.2f}s"
				)

			return response

		finally:
			active_requests.dec()
