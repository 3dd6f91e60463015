"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for behavioral constants in the voice coach.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Deployment-specific values (keys, model names) live in config.py instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Tuple

# =============================================================================
# Audio Format (PCM16 mono @ 24kHz on the realtime wire)
# =============================================================================

REALTIME_SAMPLE_RATE_HZ: Final[int] = 24_000
AUDIO_CHANNELS: Final[int] = 1
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)

# Capture produces fixed-size frames of this many samples (~170ms @ 24kHz)
CAPTURE_FRAME_SAMPLES: Final[int] = 4096

PCM16_NEGATIVE_SCALE: Final[float] = 32768.0
PCM16_POSITIVE_SCALE: Final[float] = 32767.0

WIRE_AUDIO_FORMAT: Final[str] = "pcm16"

# =============================================================================
# Realtime Session Negotiation
# =============================================================================

REALTIME_MODALITIES: Final[Tuple[str, ...]] = ("text", "audio")
REALTIME_VOICES: Final[Tuple[str, ...]] = ("alloy", "echo", "shimmer")
REALTIME_PROTOCOL_HEADER: Final[str] = "realtime=v1"

# Server-side voice activity detection
VAD_TYPE: Final[str] = "server_vad"
VAD_THRESHOLD: Final[float] = 0.5
VAD_PREFIX_PADDING_MS: Final[int] = 300
VAD_SILENCE_DURATION_MS: Final[int] = 500

DEFAULT_REALTIME_INSTRUCTIONS: Final[str] = (
    "You are a helpful AI coach having a natural conversation."
)

# =============================================================================
# Connection Lifecycle
# =============================================================================

WS_NORMAL_CLOSE_CODE: Final[int] = 1000
WS_ABNORMAL_CLOSE_CODE: Final[int] = 1006
WS_MAX_MESSAGE_BYTES: Final[int] = 2**24

# Bounded wait for queued outbound commands on disconnect (local, not a liveness timeout)
OUTBOX_DRAIN_TIMEOUT_S: Final[float] = 1.0

# =============================================================================
# Text-to-Speech
# =============================================================================

TTS_VOICES: Final[Tuple[str, ...]] = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")
TTS_SPEEDS: Final[Tuple[float, ...]] = (0.25, 0.5, 0.75, 1.0, 1.25, 1.5, 1.75, 2.0)
TTS_DEFAULT_VOICE: Final[str] = "alloy"
TTS_DEFAULT_SPEED: Final[float] = 1.0
TTS_MEDIA_TYPE: Final[str] = "audio/mpeg"

# =============================================================================
# Coaching
# =============================================================================

COACHING_STYLES: Final[Tuple[str, ...]] = ("accent", "language", "executive")

# Words stripped by the local accent fallback
FILLER_WORDS: Final[Tuple[str, ...]] = ("um", "uh", "like")

# (old, new) phrase substitutions of the local language / executive fallbacks
LANGUAGE_FALLBACK_SUBSTITUTIONS: Final[Tuple[Tuple[str, str], ...]] = (
    ("This is", "This exemplifies"),
    ("demonstrates", "showcases"),
)
EXECUTIVE_FALLBACK_SUBSTITUTIONS: Final[Tuple[Tuple[str, str], ...]] = (
    ("This is a sample", "This represents a professional communication"),
)

CONVERSATION_FALLBACK_PREFIX: Final[str] = (
    "I understand you're working with our coaching system."
)
CONVERSATION_FALLBACK_PLATFORM: Final[str] = (
    "This platform provides comprehensive voice training across multiple dimensions "
    "including accent refinement, language enhancement, and executive communication skills."
)
CONVERSATION_FALLBACK_FOLLOW_UP: Final[str] = (
    "How can I assist you further with your communication goals?"
)
CONVERSATION_EMPTY_REPLY: Final[str] = (
    "I'm here to help! Could you tell me more about what you're working on?"
)

# =============================================================================
# Observability
# =============================================================================

LOG_PREVIEW_CHARS: Final[int] = 100

# =============================================================================
# Helper Functions
# =============================================================================

def samples_to_seconds(num_samples: int, sample_rate_hz: int = REALTIME_SAMPLE_RATE_HZ) -> float:
    """
    Convert a sample count to a duration in seconds.

    Non-positive input returns 0.0.
    """
    if num_samples <= 0 or sample_rate_hz <= 0:
        return 0.0
    return num_samples / float(sample_rate_hz)


# =============================================================================
# Convenience Bundles
# =============================================================================

@dataclass(frozen=True)
class VADSettings:
    """
    Immutable bundle describing server voice-activity-detection parameters.

    Convenience wrapper only; the constants above remain the source of truth.
    """
    threshold: float = VAD_THRESHOLD
    prefix_padding_ms: int = VAD_PREFIX_PADDING_MS
    silence_duration_ms: int = VAD_SILENCE_DURATION_MS

    def to_wire(self) -> dict[str, object]:
        """Return the turn_detection block of a session.update command."""
        return {
            "type": VAD_TYPE,
            "threshold": self.threshold,
            "prefix_padding_ms": self.prefix_padding_ms,
            "silence_duration_ms": self.silence_duration_ms,
        }


DEFAULT_VAD: Final[VADSettings] = VADSettings()
