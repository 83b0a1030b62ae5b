from collections.abc import AsyncIterator

import pytest

from tradetracker.domain.voice_session import (
    InvalidTransitionError,
    SessionState,
    SpeechEvent,
    VoiceSession,
    format_currency_for_voice,
    generate_voice_feedback,
)
from tradetracker.models import ParsedTransaction


async def _events(*events: SpeechEvent) -> AsyncIterator[SpeechEvent]:
    for event in events:
        yield event


def test_start_and_receive() -> None:
    session = VoiceSession()
    seen: list[SessionState] = []
    session.on_change(lambda s: seen.append(s.state))

    session.start()
    session.receive("sold five bags for 1500 shillings", 0.92)

    assert seen == [SessionState.RECORDING, SessionState.COMPLETED]
    assert session.transcript == "sold five bags for 1500 shillings"
    assert session.confidence == 0.92
    assert session.finished is True


def test_stop_while_recording_fails_session() -> None:
    session = VoiceSession()
    session.start()

    session.stop()

    assert session.state == SessionState.FAILED
    assert session.error == "stopped"


def test_stop_outside_recording_is_noop() -> None:
    session = VoiceSession()
    session.stop()
    assert session.state == SessionState.IDLE


def test_receive_before_start_is_rejected() -> None:
    session = VoiceSession()
    with pytest.raises(InvalidTransitionError):
        session.receive("hello")
    assert session.state == SessionState.IDLE


def test_start_twice_is_rejected() -> None:
    session = VoiceSession()
    session.start()
    with pytest.raises(InvalidTransitionError):
        session.start()


def test_reset_clears_session() -> None:
    session = VoiceSession()
    session.start()
    session.fail("network")

    session.reset()

    assert session.state == SessionState.IDLE
    assert session.error is None
    session.start()
    assert session.state == SessionState.RECORDING


@pytest.mark.anyio
async def test_consume_completes_on_transcript() -> None:
    session = VoiceSession()
    state = await session.consume(_events(
        SpeechEvent(transcript="   "),
        SpeechEvent(transcript=" bought fuel for 500 ", confidence=0.8),
        SpeechEvent(transcript="ignored"),
    ))

    assert state == SessionState.COMPLETED
    assert session.transcript == "bought fuel for 500"


@pytest.mark.anyio
async def test_consume_records_recognizer_error() -> None:
    session = VoiceSession()
    state = await session.consume(_events(SpeechEvent(error="not-allowed")))

    assert state == SessionState.FAILED
    assert session.error == "not-allowed"


@pytest.mark.anyio
async def test_consume_without_speech_fails() -> None:
    session = VoiceSession()
    state = await session.consume(_events())

    assert state == SessionState.FAILED
    assert session.error == "no speech detected"


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (800, "800 shillings"),
        (1500, "1.5 thousand shillings"),
        (12.5, "12.5 shillings"),
    ],
)
def test_format_currency_for_voice(amount: float, expected: str) -> None:
    assert format_currency_for_voice(amount) == expected


def test_voice_feedback() -> None:
    result = ParsedTransaction(
        success=True,
        type="income",
        amount=1500,
        description="Sold five bags",
        confidence=0.9,
    )
    assert generate_voice_feedback(result) == (
        "I heard income of 1.5 thousand shillings. Sold five bags. Is this correct?"
    )


def test_voice_feedback_for_failure() -> None:
    assert generate_voice_feedback(ParsedTransaction()) == (
        "I couldn't understand that transaction. Please try again."
    )
