from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tradetracker.core.settings import ServiceConfig
from tradetracker.domain.voice_session import SessionState, SpeechEvent, VoiceSession
from tradetracker.manager import ParserService
from tradetracker.models import Category, ParsedTransaction

CATEGORIES = [Category(id="c2", name="Transport", kind="expense")]


async def _events(*events: SpeechEvent) -> AsyncIterator[SpeechEvent]:
    for event in events:
        yield event


def test_llm_disabled_without_key() -> None:
    service = ParserService(config=ServiceConfig())
    assert service.llm is None
    assert service.ai_enabled is False


def test_llm_disabled_by_flag() -> None:
    service = ParserService(config=ServiceConfig(openai_api_key="sk-fake", ai_parsing_enabled=False))
    assert service.ai_enabled is False


def test_llm_enabled_with_key() -> None:
    config = ServiceConfig(openai_api_key="sk-fake", openai_model="gpt-4o-mini", openai_timeout=5.0)
    with patch("tradetracker.parsers.llm.AsyncOpenAI") as mock_openai:
        service = ParserService(config=config)

    assert service.ai_enabled is True
    assert service.llm.model == "gpt-4o-mini"
    assert service.llm.voice_parser is service.voice
    mock_openai.assert_called_once_with(
        api_key="sk-fake",
        base_url=None,
        timeout=5.0,
        max_retries=0,
    )


@pytest.mark.anyio
async def test_parse_voice_without_ai() -> None:
    service = ParserService(config=ServiceConfig())

    res = await service.parse_voice("Bought transport fuel for 800 shillings", CATEGORIES)

    assert res.type == "expense"
    assert res.amount == 800
    assert res.category_id == "c2"
    assert res.method == "pattern_matching"


@pytest.mark.anyio
async def test_use_ai_false_skips_llm() -> None:
    llm = MagicMock()
    llm.enabled = True
    llm.parse_voice = AsyncMock()
    service = ParserService(config=ServiceConfig(), llm=llm)

    res = await service.parse_voice("sold rice for 100 shillings", use_ai=False)

    assert res.method == "pattern_matching"
    llm.parse_voice.assert_not_called()


@pytest.mark.anyio
async def test_parse_routes_to_llm() -> None:
    llm = MagicMock()
    llm.enabled = True
    llm.parse_voice = AsyncMock(return_value=ParsedTransaction(success=True, method="openai_api"))
    service = ParserService(config=ServiceConfig(), llm=llm)

    res = await service.parse_voice("sold rice for 100 shillings", CATEGORIES)

    assert res.method == "openai_api"
    llm.parse_voice.assert_awaited_once_with("sold rice for 100 shillings", CATEGORIES, abort=None)


@pytest.mark.anyio
async def test_parse_receipt_text_without_ai() -> None:
    service = ParserService(config=ServiceConfig())

    res = await service.parse_receipt_text("SHELL PETROL STATION\nFuel 2000\nTOTAL 2000", CATEGORIES)

    assert res.amount == 2000
    assert res.category_id == "c2"
    assert res.method == "simple_parsing"


@pytest.mark.anyio
async def test_parse_voice_session() -> None:
    service = ParserService(config=ServiceConfig())
    session = VoiceSession()

    res = await service.parse_voice_session(
        session,
        _events(SpeechEvent(transcript="Bought fuel for 300 shillings", confidence=0.92)),
        CATEGORIES,
    )

    assert session.state == SessionState.COMPLETED
    assert session.confidence == 0.92
    assert res is not None
    assert res.amount == 300


@pytest.mark.anyio
async def test_parse_voice_session_error() -> None:
    service = ParserService(config=ServiceConfig())
    session = VoiceSession()

    res = await service.parse_voice_session(session, _events(SpeechEvent(error="no-speech")))

    assert res is None
    assert session.state == SessionState.FAILED
    assert session.error == "no-speech"


@pytest.mark.anyio
async def test_aclose_closes_llm() -> None:
    llm = MagicMock()
    llm.aclose = AsyncMock()
    service = ParserService(config=ServiceConfig(), llm=llm)

    await service.aclose()

    llm.aclose.assert_awaited_once()
