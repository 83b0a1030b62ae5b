import asyncio
from collections.abc import AsyncIterable, Sequence

from tradetracker.core.settings import ServiceConfig
from tradetracker.domain.voice_session import SessionState, SpeechEvent, VoiceSession
from tradetracker.logger import get_logger
from tradetracker.models import Category, ParsedTransaction, ReceiptParseResult
from tradetracker.parsers.llm import LLMParser
from tradetracker.parsers.receipt import ReceiptPatternParser
from tradetracker.parsers.voice import VoicePatternParser

logger = get_logger(__name__)


class ParserService:
    def __init__(self, config: ServiceConfig | None = None, llm: LLMParser | None = None):
        self.config = config or ServiceConfig()
        self.voice = VoicePatternParser()
        self.receipt = ReceiptPatternParser()
        self.llm = llm
        if self.llm is None:
            self._build_llm()

    def _build_llm(self) -> None:
        # LLM parsing is optional; without a key the pattern parsers answer directly
        if self.config.ai_available:
            self.llm = LLMParser.from_credentials(
                api_key=self.config.openai_api_key,
                model=self.config.openai_model,
                base_url=self.config.openai_base_url,
                timeout=self.config.openai_timeout,
            )
            self.llm.voice_parser = self.voice
            self.llm.receipt_parser = self.receipt
            logger.info(
                f"LLM parsing enabled: model={self.config.openai_model}, "
                f"base_url={self.config.openai_base_url or 'default'}"
            )
        else:
            self.llm = None
            logger.info("LLM parsing disabled; using pattern matching only.")

    @property
    def ai_enabled(self) -> bool:
        return self.llm is not None and self.llm.enabled

    async def parse_voice(
        self,
        text: str,
        categories: Sequence[Category] | None = None,
        *,
        use_ai: bool = True,
        abort: asyncio.Event | None = None,
    ) -> ParsedTransaction:
        if use_ai and self.ai_enabled:
            return await self.llm.parse_voice(text, categories, abort=abort)
        return self.voice.parse(text, categories)

    async def parse_receipt_text(
        self,
        ocr_text: str,
        categories: Sequence[Category] | None = None,
        *,
        use_ai: bool = True,
        abort: asyncio.Event | None = None,
    ) -> ReceiptParseResult:
        if use_ai and self.ai_enabled:
            return await self.llm.parse_receipt(ocr_text, categories, abort=abort)
        return self.receipt.parse(ocr_text, categories)

    async def parse_voice_session(
        self,
        session: VoiceSession,
        source: AsyncIterable[SpeechEvent],
        categories: Sequence[Category] | None = None,
        *,
        use_ai: bool = True,
    ) -> ParsedTransaction | None:
        """Record one utterance and parse it. Returns None when capture failed or was stopped."""
        state = await session.consume(source)
        if state != SessionState.COMPLETED or not session.transcript:
            logger.info("[VOICE] Capture ended without a transcript (%s).", session.error)
            return None
        return await self.parse_voice(session.transcript, categories, use_ai=use_ai)

    async def aclose(self) -> None:
        if self.llm is not None:
            await self.llm.aclose()
