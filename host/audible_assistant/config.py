# audible_assistant/config.py
"""
Configuration management for the voice assistant
"""

import os
import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_CAPTURE_PATH = Path.home() / ".cache" / "audible_assistant" / "recording.wav"


@dataclass
class CaptureSettings:
    """Fixed capture format handed to the recorder on start"""
    sample_rate: int
    channels: int
    path: Path
    format: str = "WAV"
    subtype: str = "PCM_16"

    @property
    def filename(self) -> str:
        return f"recording.{self.format.lower()}"


@dataclass
class Config:
    """Configuration settings for the voice assistant"""
    # === API KEYS ===
    openai_api_key: str

    # === MODEL CONFIGURATION ===
    # Transcription
    stt_model: str

    # Chat
    chat_provider: str
    chat_model: str
    ollama_host: str
    local_chat_model: str
    chat_timeout: float

    # TTS
    tts_model: str
    tts_voice: str

    # === AUDIO CONFIGURATION ===
    sample_rate: int
    capture_channels: int
    capture_path: str
    meter_interval: float
    silence_check_interval: float
    silence_previous_threshold: float
    silence_current_threshold: float
    capture_power_divisor: float
    playback_power_divisor: float

    # === SYSTEM CONFIGURATION ===
    max_retries: int
    retry_delay: float
    max_history_messages: int

    # === LOGGING CONFIGURATION ===
    log_level: str
    log_file: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables"""
        return cls(
            # === API KEYS ===
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),

            # === MODEL CONFIGURATION ===
            stt_model=os.getenv("STT_MODEL", "whisper-1"),

            chat_provider=os.getenv("CHAT_PROVIDER", "openai").lower(),
            chat_model=os.getenv("CHAT_MODEL", "gpt-4o"),
            ollama_host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
            local_chat_model=os.getenv("LOCAL_CHAT_MODEL", "llama3.1:8b-instruct-q4_0"),
            chat_timeout=float(os.getenv("CHAT_TIMEOUT", "30")),

            tts_model=os.getenv("TTS_MODEL", "tts-1"),
            tts_voice=os.getenv("TTS_VOICE", "alloy").lower(),

            # === AUDIO CONFIGURATION ===
            # 12kHz mono keeps uploads small; the silence timings below are tuned for it
            sample_rate=int(os.getenv("SAMPLE_RATE", "12000")),
            capture_channels=int(os.getenv("CAPTURE_CHANNELS", "1")),
            capture_path=os.getenv("CAPTURE_PATH", str(DEFAULT_CAPTURE_PATH)),
            meter_interval=float(os.getenv("METER_INTERVAL", "0.2")),
            silence_check_interval=float(os.getenv("SILENCE_CHECK_INTERVAL", "1.6")),
            silence_previous_threshold=float(os.getenv("SILENCE_PREVIOUS_THRESHOLD", "0.25")),
            silence_current_threshold=float(os.getenv("SILENCE_CURRENT_THRESHOLD", "0.175")),
            capture_power_divisor=float(os.getenv("CAPTURE_POWER_DIVISOR", "50")),
            playback_power_divisor=float(os.getenv("PLAYBACK_POWER_DIVISOR", "160")),

            # === SYSTEM CONFIGURATION ===
            max_retries=int(os.getenv("MAX_RETRIES", "2")),
            retry_delay=float(os.getenv("RETRY_DELAY", "1.0")),
            max_history_messages=int(os.getenv("MAX_HISTORY_MESSAGES", "20")),

            # === LOGGING CONFIGURATION ===
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "audible_assistant.log"),
        )

    def capture_settings(self) -> CaptureSettings:
        """Build the fixed capture format from the audio settings"""
        return CaptureSettings(
            sample_rate=self.sample_rate,
            channels=self.capture_channels,
            path=Path(os.path.expanduser(self.capture_path)),
        )


def setup_logging(config: Config):
    """Configure logging with file and console output"""
    file_handler = logging.FileHandler(config.log_file, encoding='utf-8')
    console_handler = logging.StreamHandler(sys.stdout)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[file_handler, console_handler],
        force=True  # Reconfigure even if already configured
    )

    # Reduce noise from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
