"""
Translation between dashboard call settings and VAPI assistant fields

Pure functions: request dicts in, VAPI update payloads out (and back for reads).
Only keys present in the input are mapped.
"""

from typing import Optional

CATEGORIES = ("voicemail", "keypad", "silence", "timing")

DEFAULT_KEYPAD_TIMEOUT = 2.5
DEFAULT_SILENCE_SECONDS = 5
DEFAULT_MAX_CALL_HOURS = 0.17
DEFAULT_RING_SECONDS = 30


def voicemail_detection(settings: dict) -> Optional[dict]:
    if not settings.get("enabled"):
        return None
    return {
        "beepMaxAwaitSeconds": 30,
        "provider": "google",
        "backoffPlan": {"startAtSeconds": 5, "frequencySeconds": 5, "maxRetries": 6},
        "type": "audio",
    }


def keypad_input_plan(settings: dict) -> dict:
    if not settings.get("enabled"):
        return {"enabled": False}
    return {
        "enabled": True,
        "timeoutSeconds": settings.get("timeout") or DEFAULT_KEYPAD_TIMEOUT,
        "delimiters": [settings.get("terminationKey")],
    }


def stop_speaking_plan(settings: dict) -> dict:
    backoff = (settings.get("duration") or DEFAULT_SILENCE_SECONDS) if settings.get("enabled") else 0
    return {"numWords": 0, "voiceSeconds": 0.2, "backoffSeconds": backoff}


def timing_settings(settings: dict) -> dict:
    update = {}
    if settings.get("maxCallDuration") is not None:
        update["maxDurationSeconds"] = round(settings["maxCallDuration"] * 3600)
    if settings.get("pauseBeforeSpeaking") is not None:
        update["startSpeakingPlan"] = {
            "waitSeconds": settings["pauseBeforeSpeaking"],
            "smartEndpointingPlan": {"provider": "vapi"},
            "smartEndpointingEnabled": False,
        }
    if settings.get("ringDuration") is not None:
        update["transportConfigurations"] = [
            {"provider": "twilio", "timeout": settings["ringDuration"], "record": False, "recordingChannels": "mono"}
        ]
    return update


def to_vapi_update(settings: dict) -> dict:
    """Full settings form -> VAPI assistant PATCH body"""
    update = {}
    if "voicemailDetection" in settings and settings["voicemailDetection"] is not None:
        update["voicemailDetection"] = voicemail_detection(settings["voicemailDetection"])
    if settings.get("userKeypadInput") is not None:
        update["keypadInputPlan"] = keypad_input_plan(settings["userKeypadInput"])
    if settings.get("endCallOnSilence") is not None:
        update["stopSpeakingPlan"] = stop_speaking_plan(settings["endCallOnSilence"])

    update.update(timing_settings(settings))
    if settings.get("maxDurationSeconds") is not None:
        update["maxDurationSeconds"] = settings["maxDurationSeconds"]

    for key in ("firstMessage", "firstMessageMode", "backgroundSound"):
        if settings.get(key) is not None:
            update[key] = settings[key]
    return update


def category_update(category: str, settings: dict) -> dict:
    """
    One settings category -> VAPI assistant PATCH body.

    Raises:
        ValueError: For an unknown category
    """
    if category == "voicemail":
        return {"voicemailDetection": voicemail_detection(settings)}
    if category == "keypad":
        return {"keypadInputPlan": keypad_input_plan(settings)}
    if category == "silence":
        return {"stopSpeakingPlan": stop_speaking_plan(settings)}
    if category == "timing":
        return timing_settings(settings)
    raise ValueError(f"Invalid category. Supported categories: {', '.join(CATEGORIES)}")


def from_vapi_assistant(assistant: dict) -> dict:
    """VAPI assistant -> dashboard settings form"""
    keypad = assistant.get("keypadInputPlan") or {}
    stop_speaking = assistant.get("stopSpeakingPlan") or {}
    start_speaking = assistant.get("startSpeakingPlan") or {}
    transports = assistant.get("transportConfigurations") or [{}]
    max_seconds = assistant.get("maxDurationSeconds")
    delimiters = keypad.get("delimiters") or []
    backoff = stop_speaking.get("backoffSeconds") or 0

    return {
        "voicemailDetection": {"enabled": assistant.get("voicemailDetection") is not None, "action": "hang-up"},
        "userKeypadInput": {
            "enabled": bool(keypad.get("enabled")),
            "timeout": keypad.get("timeoutSeconds") or DEFAULT_KEYPAD_TIMEOUT,
            "terminationKey": delimiters[0] if delimiters else None,
            "digitLimit": 1,
        },
        "endCallOnSilence": {"enabled": backoff > 0, "duration": backoff or DEFAULT_SILENCE_SECONDS},
        "maxCallDuration": round(max_seconds / 3600, 2) if max_seconds else DEFAULT_MAX_CALL_HOURS,
        "pauseBeforeSpeaking": start_speaking.get("waitSeconds") or 0,
        "ringDuration": transports[0].get("timeout") or DEFAULT_RING_SECONDS,
    }
