# audible_assistant/errors.py
"""
Error taxonomy for a conversation turn
"""


class AssistantError(Exception):
    """Base class for failures that end a turn"""


class CaptureError(AssistantError):
    """Microphone could not be acquired or produced no audio"""


class TranscriptionError(AssistantError):
    """Speech-to-text service failed"""


class GenerationError(AssistantError):
    """Reply generation failed"""


class SynthesisError(AssistantError):
    """Text-to-speech service failed"""


class PlaybackError(AssistantError):
    """Speaker could not be acquired or the reply could not be decoded"""


class PipelineCancelled(AssistantError):
    """The turn was cancelled by the user; never shown as an error"""
