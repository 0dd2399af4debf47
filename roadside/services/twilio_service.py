"""
Twilio SMS Service
Sends campaign and ticket SMS through the platform Twilio account
"""

import logging
from typing import Optional

import httpx

from ..config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER

logger = logging.getLogger(__name__)

# Twilio error codes that mean the destination can never receive SMS
INVALID_NUMBER_ERROR_CODES = (21211, 21612, 21408, 21614)


async def send_sms(
    to_phone: str,
    message_body: str,
    from_number: Optional[str] = None,
) -> tuple[bool, Optional[str], Optional[str], Optional[int]]:
    """
    Send SMS via Twilio

    Args:
        to_phone: Recipient phone number
        message_body: SMS message content
        from_number: Sender number, defaults to TWILIO_PHONE_NUMBER

    Returns:
        Tuple of (success, message_sid, error_message, error_code)
    """
    if not to_phone:
        return False, None, "No phone number provided", None

    if not TWILIO_ACCOUNT_SID or not TWILIO_AUTH_TOKEN:
        logger.warning("⚠️ Twilio credentials not configured, SMS not sent")
        return False, None, "Twilio not configured", None

    data = {
        "To": to_phone,
        "Body": message_body,
        "From": from_number or TWILIO_PHONE_NUMBER,
    }

    try:
        logger.info(f"📱 Sending SMS to {to_phone}")
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"https://api.twilio.com/2010-04-01/Accounts/{TWILIO_ACCOUNT_SID}/Messages.json",
                auth=(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN),
                data=data,
                timeout=10.0,
            )

        if response.status_code in [200, 201]:
            message_sid = response.json().get("sid")
            logger.info(f"✅ SMS sent to {to_phone} (SID: {message_sid})")
            return True, message_sid, None, None

        error_data = response.json()
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        return False, None, error_message, error_code
    except httpx.HTTPError as e:
        logger.error(f"❌ Twilio API error: {str(e)}")
        return False, None, str(e), None


def is_invalid_number_error(error_code: Optional[int]) -> bool:
    return error_code in INVALID_NUMBER_ERROR_CODES
