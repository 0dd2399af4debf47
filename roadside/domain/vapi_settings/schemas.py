"""VAPI settings schemas - the dashboard's view of assistant call settings"""

from typing import Optional

from pydantic import BaseModel


class ToggleSetting(BaseModel):
    enabled: bool = False


class KeypadSetting(ToggleSetting):
    timeout: Optional[float] = None
    terminationKey: Optional[str] = None


class SilenceSetting(ToggleSetting):
    duration: Optional[float] = None


class TimingSetting(BaseModel):
    maxCallDuration: Optional[float] = None  # hours
    pauseBeforeSpeaking: Optional[float] = None
    ringDuration: Optional[int] = None


class CallSettingsUpdate(TimingSetting):
    voicemailDetection: Optional[ToggleSetting] = None
    userKeypadInput: Optional[KeypadSetting] = None
    endCallOnSilence: Optional[SilenceSetting] = None
    maxDurationSeconds: Optional[int] = None
    firstMessage: Optional[str] = None
    firstMessageMode: Optional[str] = None
    backgroundSound: Optional[str] = None
