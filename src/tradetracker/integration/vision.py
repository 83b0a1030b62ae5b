import asyncio
from typing import Any

import httpx

from tradetracker.domain.images import encode_image
from tradetracker.logger import get_logger
from tradetracker.models import OcrResult

logger = get_logger(__name__)

VISION_URL = "https://vision.googleapis.com/v1/images:annotate"
LANGUAGE_HINTS = ("en", "sw")
VISION_CONFIDENCE = 0.8


class OCRError(Exception):
    """The OCR service did not produce usable text."""


class OCRConfigurationError(OCRError):
    """No API key is configured for the OCR service."""


def build_annotate_request(image_bytes: bytes) -> dict[str, Any]:
    return {
        "requests": [
            {
                "image": {"content": encode_image(image_bytes)},
                "features": [
                    {"type": "TEXT_DETECTION", "maxResults": 1},
                    {"type": "DOCUMENT_TEXT_DETECTION", "maxResults": 1},
                ],
                "imageContext": {"languageHints": list(LANGUAGE_HINTS)},
            }
        ]
    }


def extract_annotation_text(data: dict[str, Any]) -> str:
    responses = data.get("responses") or []
    first = responses[0] if responses else {}

    error = first.get("error")
    if error:
        raise OCRError(f"Vision API error: {error.get('message', 'unknown error')}")

    annotations = first.get("textAnnotations") or []
    text = annotations[0].get("description") if annotations else None
    if not text or not text.strip():
        raise OCRError("No text detected in the image")
    return text


class VisionClient:
    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        url: str = VISION_URL,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.url = url
        self._client = client
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    async def extract_text(self, image_bytes: bytes) -> OcrResult:
        """Run text detection on the image. Any failure raises OCRError; there is no fallback OCR."""
        if not self.api_key:
            raise OCRConfigurationError("Google Vision API key not found")

        client = await self._get_client()
        logger.debug("[OCR] Sending %d bytes to Vision API.", len(image_bytes))
        try:
            response = await client.post(
                self.url,
                params={"key": self.api_key},
                json=build_annotate_request(image_bytes),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code if exc.response is not None else "unknown"
            logger.error("[OCR] Vision API returned status %s.", status)
            raise OCRError(f"Vision API error: {status}") from exc
        except httpx.HTTPError as exc:
            logger.error("[OCR] Vision API request failed: %s", exc)
            raise OCRError(f"Vision API request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("[OCR] Vision API returned invalid JSON.")
            raise OCRError("Vision API returned invalid JSON") from exc

        text = extract_annotation_text(data)
        logger.info("[OCR] Extracted %d characters of text.", len(text))
        return OcrResult(text=text, confidence=VISION_CONFIDENCE)
