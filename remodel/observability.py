# remodel/observability.py
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware

from remodel.security import USER_HEADER


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        # the raw caller header; resolution happens later in the route dependencies
        caller = request.headers.get(USER_HEADER) or None

        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logging.getLogger("remodel.req").info(
            "%s %s -> %s in %.1fms user=%s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            caller,
        )
        return response
