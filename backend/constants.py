"""
CONSTANTS
---------
Single source of truth for all behavioral invariants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Capture format (float32 mono @ 16kHz, 4096-sample frames)
# =============================================================================

CAPTURE_SAMPLE_RATE_HZ: Final[int] = 16_000
CAPTURE_CHANNELS: Final[int] = 1
CAPTURE_FRAME_SAMPLES: Final[int] = 4096
CAPTURE_FRAME_DURATION_S: Final[float] = CAPTURE_FRAME_SAMPLES / CAPTURE_SAMPLE_RATE_HZ

# =============================================================================
# Playback format (synthesized audio from the remote, 24kHz mono)
# =============================================================================

PLAYBACK_SAMPLE_RATE_HZ: Final[int] = 24_000
PLAYBACK_CHANNELS: Final[int] = 1
PLAYBACK_QUEUE_MAX_S: Final[float] = 30.0

# =============================================================================
# Wire format (PCM16 LE, base64)
# =============================================================================

PCM_SAMPLE_WIDTH_BYTES: Final[int] = 2
PCM_SCALE: Final[float] = 32768.0
PCM_INT16_MIN: Final[int] = -32768
PCM_INT16_MAX: Final[int] = 32767

PCM_MIME_PREFIX: Final[str] = "audio/pcm"
CAPTURE_MIME_TYPE: Final[str] = f"{PCM_MIME_PREFIX};rate={CAPTURE_SAMPLE_RATE_HZ}"

# =============================================================================
# Counting / display
# =============================================================================

DEFAULT_KEYWORD: Final[str] = "practice"
TRANSCRIPT_DISPLAY_MAX_CHARS: Final[int] = 300

# =============================================================================
# Remote service (Gemini Live)
# =============================================================================

LIVE_WS_URL: Final[str] = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)
DEFAULT_LIVE_MODEL: Final[str] = "gemini-2.5-flash-native-audio-preview-09-2025"
DEFAULT_SYSTEM_INSTRUCTION: Final[str] = (
    "You are a silent observer listening to the user. You do not need to speak. "
    "Your goal is to let the system track the word '{keyword}'."
)
LIVE_RESPONSE_MODALITY: Final[str] = "AUDIO"
LIVE_WS_MAX_MESSAGE_BYTES: Final[int] = 2**22
LIVE_CLOSE_TIMEOUT_S: Final[float] = 2.0

# =============================================================================
# User-visible error messages
# =============================================================================

TRANSPORT_ERROR_MESSAGE: Final[str] = "Connection error detected."
START_FAILED_MESSAGE: Final[str] = "Failed to start session"
