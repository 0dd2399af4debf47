"""
VAPI REST client
Assistant CRUD plus the assistant templates created during organization AI setup
"""

import logging
from typing import Optional

import httpx

from ..config import OPENAI_CHAT_MODEL, VAPI_API_KEY, VAPI_BASE_URL, VAPI_WEBHOOK_BASE_URL

logger = logging.getLogger(__name__)


class VapiError(Exception):
    """Raised when the VAPI API rejects a request or cannot be reached"""


def _headers() -> dict:
    return {"Authorization": f"Bearer {VAPI_API_KEY}", "Content-Type": "application/json"}


async def _request(method: str, path: str, json: Optional[dict] = None) -> dict:
    if not VAPI_API_KEY:
        raise VapiError("VAPI API key not configured")

    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.request(method, f"{VAPI_BASE_URL}{path}", headers=_headers(), json=json)
    except httpx.HTTPError as e:
        logger.error(f"❌ VAPI {method} {path} failed: {str(e)}")
        raise VapiError(str(e)) from e

    if response.status_code >= 400:
        try:
            message = response.json().get("message", response.text)
        except ValueError:
            message = response.text
        logger.error(f"❌ VAPI {method} {path} returned {response.status_code}: {message}")
        raise VapiError(f"VAPI error {response.status_code}: {message}")

    return response.json() if response.content else {}


async def get_assistant(assistant_id: str) -> dict:
    return await _request("GET", f"/assistant/{assistant_id}")


async def update_assistant(assistant_id: str, update_data: dict) -> dict:
    logger.info(f"🔄 Updating VAPI assistant {assistant_id}: {list(update_data.keys())}")
    return await _request("PATCH", f"/assistant/{assistant_id}", json=update_data)


async def create_assistant(assistant_config: dict) -> dict:
    assistant = await _request("POST", "/assistant", json=assistant_config)
    logger.info(f"✅ VAPI assistant created: {assistant_config.get('name')} (ID: {assistant.get('id')})")
    return assistant


def _assistant_config(name: str, prompt: str, hook: str, metadata: dict) -> dict:
    return {
        "name": name,
        "model": {
            "provider": "openai",
            "model": OPENAI_CHAT_MODEL,
            "messages": [{"role": "system", "content": prompt}],
        },
        "server": {"url": f"{VAPI_WEBHOOK_BASE_URL}/{hook}"},
        "metadata": metadata,
        "voice": {"provider": "11labs", "voiceId": "sarah"},
    }


async def create_inbound_assistant(org_name: str, org_id: int) -> dict:
    prompt = (
        f"Your name is Ava. You work for {org_name} - 24-Hr Rescue Service.\n"
        "Help drivers with broken down vehicles by collecting the vehicle details, the issue, "
        "their location and a contact number so a mechanic can be dispatched. "
        "If the caller is in danger, advise calling 911 first."
    )
    return await create_assistant(
        _assistant_config(f"{org_name} inbound", prompt, "inbound-hook", {"org_id": org_id, "type": "inbound"})
    )


async def create_outbound_assistant(org_name: str, org_id: int) -> dict:
    prompt = (
        f"Your name is Alex. You work for {org_name} - 24-Hr Rescue Service.\n"
        "Call mechanics to dispatch them for breakdown jobs. Give the job location, vehicle and issue, "
        "then confirm availability, the services offered, the total cost and an estimated arrival time."
    )
    return await create_assistant(
        _assistant_config(f"{org_name} outbound", prompt, "outbound-hook", {"org_id": org_id, "type": "outbound"})
    )


async def create_marketing_agents(org_name: str, org_id: int) -> dict:
    """Create the inbound, outbound and web marketing assistants for an organization"""
    logger.info(f"🚀 Creating marketing agents for {org_name}")

    inbound = await create_assistant(
        _assistant_config(
            f"{org_name} Marketing Inbound",
            f"You handle inbound marketing inquiries for {org_name}. Answer questions and collect lead details.",
            "marketing-inbound-hook",
            {"org_id": org_id, "type": "marketing-inbound"},
        )
    )
    outbound = await create_assistant(
        _assistant_config(
            f"{org_name} Marketing Outbound",
            f"You call leads on behalf of {org_name}. Introduce the service and qualify interest.",
            "marketing-outbound-hook",
            {"org_id": org_id, "type": "marketing-outbound"},
        )
    )
    web = await create_assistant(
        _assistant_config(
            f"{org_name} Marketing Web",
            f"You are the website assistant for {org_name}. Help visitors and capture their contact details.",
            "marketing-web-hook",
            {"org_id": org_id, "type": "marketing-web"},
        )
    )

    logger.info(f"🎉 All marketing agents created for {org_name}")
    return {"inbound": inbound.get("id"), "outbound": outbound.get("id"), "web": web.get("id")}
