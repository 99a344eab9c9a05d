import asyncio
import json
import time
from fastapi import Request, Response

from lifelog.core.logger import setup_logger
from lifelog.server.envelope import error_response

logger = setup_logger(__name__, include_location=True)

# set_body and get_body let the middleware read the request body without
# consuming it for the route handler.


async def set_body(request: Request, body: bytes):
    async def receive():
        return {"type": "http.request", "body": body}
    request._receive = receive


async def get_body(request: Request) -> bytes:
    body = await request.body()
    await set_body(request, body)
    return body


def _pretty(body: bytes) -> str:
    if not body:
        return ""
    try:
        return json.dumps(json.loads(body), indent=2)
    except ValueError:
        return body.decode(errors="replace")


def make_catch_exceptions_middleware(timeout: float):
    """
    Request logging middleware: logs method, url, duration and status of every
    request, answers 504 when the request exceeds ``timeout`` seconds and 500
    for anything the exception handlers did not render.
    """

    async def catch_exceptions_middleware(request: Request, call_next):
        start_time = time.time()
        request_json = _pretty(await get_body(request))
        try:
            response: Response = await asyncio.wait_for(call_next(request), timeout=timeout)
        except asyncio.TimeoutError as err:
            process_time_sec = time.time() - start_time
            logger.error(f"{request.method} {request.url} ({round(process_time_sec, 2)}):\nrequest: {request_json}\nstatus_code: 504\nresponse: {err}")
            return error_response(504, "Request processing time exceeded the maximum timeout")
        except Exception as err:
            process_time_sec = time.time() - start_time
            logger.exception(f"{request.method} {request.url} ({round(process_time_sec, 2)}):\nrequest: {request_json}\nstatus_code: 500\nresponse: {err}")
            return error_response(500, f"Internal error: {err}")

        process_time_sec = time.time() - start_time
        logger.info(f"{request.method} {request.url} ({round(process_time_sec, 2)}):\nrequest: {request_json}\nstatus_code: {response.status_code}")
        return response

    return catch_exceptions_middleware
