"""
Thin bootstrapper that wires together the high-level pieces
and drives the state machine from the terminal.
"""

import argparse
import asyncio
import logging
import sys
import threading
from typing import Callable, List, Optional, TextIO, Tuple

from audible_assistant.audio import check_input_device
from audible_assistant.config import Config, setup_logging
from audible_assistant.conversation_manager import ConversationStateMachine
from audible_assistant.errors import CaptureError
from audible_assistant.history import ChatHistory
from audible_assistant.model_providers import ModelProviderFactory
from audible_assistant.pipeline import InteractionPipeline
from audible_assistant.state import AssistantMode, AssistantState, StateSnapshot, TranscriptEntry, VoiceType

log = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  <enter>        start recording (idle/error) or cancel what is happening
  stop           finish recording now instead of waiting for silence
  cancel         return to idle
  voice <name>   change the reply voice (idle only)
  voices         list the available voices
  history        show the conversation so far
  reset          forget the conversation context sent to the model
  quit           exit"""


class TerminalController:
    """Maps typed commands onto the state machine and prints state changes"""

    def __init__(
        self,
        machine: ConversationStateMachine,
        history: ChatHistory,
        output: Callable[[str], None] = print,
        input_stream: Optional[TextIO] = None,
    ):
        self.machine = machine
        self.history = history
        self.output = output
        self.input_stream = input_stream
        self._last_mode: Optional[AssistantMode] = None
        self._shown: Tuple[TranscriptEntry, ...] = ()

    # ---- rendering ----
    def render(self, snapshot: StateSnapshot):
        for index, entry in enumerate(snapshot.transcript):
            is_new = index >= len(self._shown)
            if is_new:
                self.output(f"You: {entry.prompt}")
            if entry.reply is not None and (is_new or self._shown[index].reply is None):
                self.output(f"Assistant: {entry.reply}")
        self._shown = snapshot.transcript

        if snapshot.mode != self._last_mode:
            self._last_mode = snapshot.mode
            if snapshot.mode == AssistantMode.ERROR:
                self.output(f"[error] {snapshot.error_message} (press enter to try again)")
            else:
                self.output(f"[{snapshot.mode.value}]")

    def _print_history(self):
        entries = self.machine.state.transcript.entries
        if not entries:
            self.output("(no conversation yet)")
            return
        for entry in entries:
            self.output(f"You: {entry.prompt}")
            self.output(f"Assistant: {entry.reply if entry.reply is not None else '(no reply)'}")

    def _print_voices(self):
        current = self.machine.state.voice
        names = [f"*{voice.value}" if voice == current else voice.value for voice in VoiceType]
        self.output("Voices: " + " ".join(names))

    # ---- commands ----
    def handle_command(self, line: str) -> bool:
        """Apply one command; returns False when the user asked to quit"""
        words: List[str] = line.strip().split()
        command = words[0].lower() if words else ""

        if command == "":
            if self.machine.mode in (AssistantMode.IDLE, AssistantMode.ERROR):
                self.machine.start_capture()
            else:
                self.machine.cancel()
        elif command == "stop":
            if not self.machine.finish_capture():
                self.output("Not recording.")
        elif command == "cancel":
            self.machine.cancel()
        elif command == "voice":
            self._change_voice(words[1:])
        elif command == "voices":
            self._print_voices()
        elif command == "history":
            self._print_history()
        elif command == "reset":
            self.history.reset()
            self.output("Conversation context cleared.")
        elif command in ("help", "?"):
            self.output(HELP_TEXT)
        elif command in ("quit", "exit", "q"):
            return False
        else:
            self.output(f"Unknown command '{command}'. Type 'help' for commands.")
        return True

    def _change_voice(self, args: List[str]):
        if not args:
            self._print_voices()
            return
        # The picker is only enabled while idle
        if not self.machine.state.is_idle:
            self.output("The voice can only be changed while idle.")
            return
        try:
            voice = VoiceType.parse(args[0])
        except ValueError:
            self.output(f"Unknown voice '{args[0]}'.")
            self._print_voices()
            return
        self.machine.select_voice(voice)
        self.output(f"Voice set to {voice.value}.")

    # ---- input loop ----
    async def run(self):
        loop = asyncio.get_running_loop()
        lines: asyncio.Queue = asyncio.Queue()
        stream = self.input_stream or sys.stdin

        def read_lines():
            for line in stream:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, None)

        # Daemon thread so a pending read never blocks shutdown
        threading.Thread(target=read_lines, name="stdin-reader", daemon=True).start()

        self.output(HELP_TEXT)
        self.render(self.machine.state.snapshot())
        while True:
            line = await lines.get()
            if line is None or not self.handle_command(line):
                break


async def run(config: Config, voice: VoiceType) -> None:
    state = AssistantState(voice)
    history = ChatHistory(config.max_history_messages)
    pipeline = InteractionPipeline(
        state,
        ModelProviderFactory.create_transcription_provider(config),
        ModelProviderFactory.create_chat_provider(config),
        ModelProviderFactory.create_tts_provider(config),
        history,
        audio_filename=config.capture_settings().filename,
    )
    machine = ConversationStateMachine(config, state, pipeline)
    controller = TerminalController(machine, history)
    state.add_listener(controller.render)

    try:
        check_input_device()
    except CaptureError as e:
        machine.report_error(e)

    try:
        await controller.run()
    finally:
        await machine.shutdown()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Talk to an assistant from the terminal")
    parser.add_argument("--voice", choices=[voice.value for voice in VoiceType],
                        help="Voice used for spoken replies (default: TTS_VOICE)")
    parser.add_argument("--chat-provider", choices=["openai", "ollama"],
                        help="Service that writes the replies (default: CHAT_PROVIDER)")
    parser.add_argument("--log-level", help="Logging level (default: LOG_LEVEL)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = Config.from_env()
    if args.chat_provider:
        config.chat_provider = args.chat_provider
    if args.log_level:
        config.log_level = args.log_level
    setup_logging(config)

    voice = VoiceType.parse(args.voice or config.tts_voice, default=VoiceType.ALLOY)
    try:
        asyncio.run(run(config, voice))
    except ValueError as e:
        log.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        log.info("Shutdown requested by user.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
