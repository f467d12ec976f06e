# audible_assistant/__init__.py
"""
Audible Assistant Package
"""

from .config import Config, CaptureSettings, setup_logging
from .errors import (
    AssistantError,
    CaptureError,
    TranscriptionError,
    GenerationError,
    SynthesisError,
    PlaybackError,
    PipelineCancelled,
)
from .state import AssistantState, AssistantMode, VoiceType, Transcript, TranscriptEntry, StateSnapshot
from .audio import SignalMeter, SoundDeviceRecorder, SoundDevicePlayer
from .silence import SilenceDetector, SilenceDecision
from .capture import CaptureSession
from .playback import PlaybackSession
from .history import ChatHistory
from .pipeline import CancellationToken, InteractionPipeline
from .conversation_manager import ConversationStateMachine, PendingOperation

__all__ = [
    'Config',
    'CaptureSettings',
    'setup_logging',
    'AssistantError',
    'CaptureError',
    'TranscriptionError',
    'GenerationError',
    'SynthesisError',
    'PlaybackError',
    'PipelineCancelled',
    'AssistantState',
    'AssistantMode',
    'VoiceType',
    'Transcript',
    'TranscriptEntry',
    'StateSnapshot',
    'SignalMeter',
    'SoundDeviceRecorder',
    'SoundDevicePlayer',
    'SilenceDetector',
    'SilenceDecision',
    'CaptureSession',
    'PlaybackSession',
    'ChatHistory',
    'CancellationToken',
    'InteractionPipeline',
    'ConversationStateMachine',
    'PendingOperation',
]
