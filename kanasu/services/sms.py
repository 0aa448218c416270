"""
SMS delivery through the MSG91 HTTP API.
"""
import time

import httpx

from kanasu.core.config import settings
from kanasu.core.exceptions import ExternalServiceError
from kanasu.core.logging_config import get_logger, log_external_api_call

logger = get_logger(__name__)

SMS_TIMEOUT_SECONDS = 10.0
TRANSACTIONAL_ROUTE = 4


def format_phone(phone: str) -> str:
    phone = phone.strip()
    return phone[1:] if phone.startswith("+") else phone


async def send_sms(phone: str, message: str) -> None:
    """Send one SMS; without an auth key the message is only logged."""
    if not settings.MSG91_AUTH_KEY:
        logger.info(f"[SMS] MSG91 not configured, would send to {phone}: {message}")
        return

    params = {
        "authkey": settings.MSG91_AUTH_KEY,
        "mobiles": format_phone(phone),
        "message": message,
        "sender": settings.MSG91_SENDER_ID,
        "route": TRANSACTIONAL_ROUTE,
    }
    if settings.MSG91_TEMPLATE_ID:
        params["template_id"] = settings.MSG91_TEMPLATE_ID

    started = time.time()
    try:
        async with httpx.AsyncClient(timeout=SMS_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.MSG91_API_URL, params=params)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        log_external_api_call(
            "msg91", settings.MSG91_API_URL, "POST", e.response.status_code,
            (time.time() - started) * 1000, success=False,
        )
        raise ExternalServiceError("Failed to send SMS", original_exception=e) from e
    except httpx.HTTPError as e:
        log_external_api_call(
            "msg91", settings.MSG91_API_URL, "POST", 0,
            (time.time() - started) * 1000, success=False, error=str(e),
        )
        raise ExternalServiceError("Failed to send SMS", original_exception=e) from e

    log_external_api_call(
        "msg91", settings.MSG91_API_URL, "POST", response.status_code, (time.time() - started) * 1000
    )
    logger.info(f"SMS sent successfully to {phone}")
