import time
import logging
from fastapi import Request

from app.utils.logger import mask_token

logger = logging.getLogger("access")

PUBLIC_PREFIX = "/public/"


def loggable_path(path: str) -> str:
    # /public/<kind>/<token>: the token is a credential
    if not path.startswith(PUBLIC_PREFIX):
        return path
    parts = path.split("/")
    if len(parts) >= 4 and parts[3]:
        parts[3] = mask_token(parts[3])
    return "/".join(parts)


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()

    response = await call_next(request)

    process_time = (time.perf_counter() - start_time) * 1000

    logger.info(
        "",
        extra={
            "client_addr": request.client.host if request.client else "unknown",
            "method": request.method,
            "path": loggable_path(request.url.path),
            "status_code": response.status_code,
            "process_time_ms": round(process_time, 2),
        },
    )

    return response
