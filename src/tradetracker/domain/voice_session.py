from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass
from enum import Enum

from tradetracker.domain.text import format_amount
from tradetracker.logger import get_logger
from tradetracker.models import ParsedTransaction

logger = get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SpeechEvent:
    """One event from a speech recognizer: either a transcript or an error."""
    transcript: str | None = None
    confidence: float | None = None
    error: str | None = None


class InvalidTransitionError(RuntimeError):
    pass


Listener = Callable[["VoiceSession"], None]


class VoiceSession:
    """
    Capture lifecycle for one spoken transaction.

    idle -> recording -> completed | failed. ``stop()`` while recording is
    an explicit cancellation and ends in ``failed`` with error "stopped".
    """

    def __init__(self) -> None:
        self.state = SessionState.IDLE
        self.transcript: str | None = None
        self.confidence: float | None = None
        self.error: str | None = None
        self._listeners: list[Listener] = []

    def on_change(self, listener: Listener) -> None:
        self._listeners.append(listener)

    @property
    def finished(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.FAILED)

    def _transition(self, expected: SessionState, target: SessionState) -> None:
        if self.state != expected:
            raise InvalidTransitionError(
                f"Cannot move from {self.state.value} to {target.value}"
            )
        self.state = target
        logger.debug("[VOICE] Session %s -> %s", expected.value, target.value)
        for listener in list(self._listeners):
            listener(self)

    def start(self) -> None:
        self._transition(SessionState.IDLE, SessionState.RECORDING)

    def receive(self, transcript: str, confidence: float | None = None) -> None:
        self.transcript = transcript
        self.confidence = confidence
        self._transition(SessionState.RECORDING, SessionState.COMPLETED)

    def fail(self, error: str) -> None:
        self.error = error
        self._transition(SessionState.RECORDING, SessionState.FAILED)

    def stop(self) -> None:
        if self.state != SessionState.RECORDING:
            return
        self.fail("stopped")

    def reset(self) -> None:
        self.state = SessionState.IDLE
        self.transcript = None
        self.confidence = None
        self.error = None

    async def consume(self, source: AsyncIterable[SpeechEvent]) -> SessionState:
        """Drive the session from recognizer events until it finishes."""
        if self.state == SessionState.IDLE:
            self.start()

        async for event in source:
            if self.finished:
                break
            if event.error:
                self.fail(event.error)
            elif event.transcript and event.transcript.strip():
                self.receive(event.transcript.strip(), event.confidence)
            if self.finished:
                break

        if not self.finished:
            self.fail("no speech detected")
        return self.state


def format_currency_for_voice(amount: float) -> str:
    if amount >= 1000:
        return f"{amount / 1000:.1f} thousand shillings"
    return f"{format_amount(amount)} shillings"


def generate_voice_feedback(result: ParsedTransaction) -> str:
    if not result.success or result.amount is None:
        return "I couldn't understand that transaction. Please try again."

    amount_text = format_currency_for_voice(result.amount)
    type_text = "income" if result.type == "income" else "expense"
    return f"I heard {type_text} of {amount_text}. {result.description}. Is this correct?"
