"""
VAPI response payloads
Every webhook answers HTTP 200; failures are expressed as a short assistant that
speaks a message and hangs up
"""

import json
from typing import Optional

from ...models import Organization

IDLE_MESSAGES = [
    "Are you still there?",
    "Is there anything else you need help with?",
    "How can I help you further?",
    "I'm still here if you need assistance",
]


def end_call_assistant(message: str) -> dict:
    return {
        "assistant": {
            "firstMessageMode": "assistant-speaks-first",
            "firstMessage": message,
            "maxDurationSeconds": 10.0,
            "endCallFunctionEnabled": True,
            "model": {
                "provider": "openai",
                "model": "gpt-4",
                "messages": [{"role": "system", "content": "end the call immediately."}],
            },
        }
    }


def error_response(message: str = "We're experiencing technical difficulties. Please try again later.") -> dict:
    return end_call_assistant(message)


def unavailable_response(message: str = "Sorry, this service is currently unavailable") -> dict:
    return end_call_assistant(message)


def feature_disabled_response() -> dict:
    return end_call_assistant("Sorry, This call feature is not activated from your end")


def status_ok() -> dict:
    return {"status": "ok"}


def assistant_request_response(assistant_id: str, organization: Organization, first_message: Optional[str] = None) -> dict:
    """Hand the call to an existing assistant with per-call overrides"""
    overrides = {
        "firstMessageInterruptionsEnabled": True,
        "firstMessageMode": "assistant-speaks-first-with-model-generated-message",
        "endCallFunctionEnabled": True,
        "backgroundDenoisingEnabled": True,
        "endCallMessage": "Thanks for having me",
        "transcriber": {"provider": "deepgram"},
        "silenceTimeoutSeconds": 30,
        "messagePlan": {
            "idleMessages": IDLE_MESSAGES,
            "idleMessageResetCountOnUserSpeechEnabled": True,
            "idleTimeoutSeconds": 7.5,
            "silenceTimeoutMessage": "Sorry, seems I lost you, can you try calling back? Bye for now.",
            "idleMessageMaxSpokenCount": 3,
        },
        "voice": {"provider": "deepgram", "voiceId": "hera", "model": "aura-2"},
        "variableValues": {
            "companyName": organization.company_name or "24Hr Truck Services",
            "organizationId": organization.id,
        },
        "metadata": {"organizationId": organization.id},
    }
    if first_message:
        overrides["firstMessageMode"] = "assistant-speaks-first"
        overrides["firstMessage"] = first_message
    return {"messageResponse": {"assistantId": assistant_id, "assistantOverrides": overrides}}


def tool_result(tool_call_id: Optional[str], payload: dict) -> dict:
    """Tool-call answer; VAPI expects the result as a JSON string"""
    return {"results": [{"toolCallId": tool_call_id or "unknown", "result": json.dumps(payload, default=str)}]}
