import base64
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tradetracker.integration.vision import OCRConfigurationError, OCRError, VisionClient


def _vision_response(data: dict[str, Any]) -> MagicMock:
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = data
    return response


def _mock_http(response: Any = None, side_effect: Any = None) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.is_closed = False
    mock_client.post = AsyncMock(return_value=response, side_effect=side_effect)
    return mock_client


@pytest.mark.anyio
async def test_extract_text_success() -> None:
    mock_client = _mock_http(_vision_response({
        "responses": [{"textAnnotations": [{"description": "NAIVAS\nTotal 350"}]}]
    }))
    client = VisionClient(api_key="AIza-test", client=mock_client)

    result = await client.extract_text(b"fake-image")

    assert result.text == "NAIVAS\nTotal 350"
    assert result.confidence == 0.8

    mock_client.post.assert_awaited_once()
    kwargs = mock_client.post.call_args.kwargs
    assert kwargs["params"] == {"key": "AIza-test"}
    request = kwargs["json"]["requests"][0]
    assert request["image"]["content"] == base64.b64encode(b"fake-image").decode("ascii")
    assert request["imageContext"]["languageHints"] == ["en", "sw"]
    assert [feature["type"] for feature in request["features"]] == [
        "TEXT_DETECTION",
        "DOCUMENT_TEXT_DETECTION",
    ]


@pytest.mark.anyio
async def test_missing_key_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    # Only the injected key counts
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "AIza-from-env")
    mock_client = _mock_http()
    client = VisionClient(api_key=None, client=mock_client)

    with pytest.raises(OCRConfigurationError):
        await client.extract_text(b"fake-image")

    mock_client.post.assert_not_called()


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"responses": [{"error": {"message": "Bad image data."}}]}, "Bad image data."),
        ({"responses": [{}]}, "No text detected"),
        ({"responses": [{"textAnnotations": [{"description": "   "}]}]}, "No text detected"),
        ({}, "No text detected"),
    ],
)
async def test_unusable_response_raises(data: dict[str, Any], message: str) -> None:
    client = VisionClient(api_key="AIza-test", client=_mock_http(_vision_response(data)))

    with pytest.raises(OCRError, match=message):
        await client.extract_text(b"fake-image")


@pytest.mark.anyio
async def test_http_error_status_raises() -> None:
    request = httpx.Request("POST", "https://vision.googleapis.com/v1/images:annotate")
    response = MagicMock()
    response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "forbidden",
        request=request,
        response=httpx.Response(403, request=request),
    )
    client = VisionClient(api_key="AIza-test", client=_mock_http(response))

    with pytest.raises(OCRError, match="403"):
        await client.extract_text(b"fake-image")


@pytest.mark.anyio
async def test_transport_error_raises() -> None:
    request = httpx.Request("POST", "https://vision.googleapis.com/v1/images:annotate")
    client = VisionClient(
        api_key="AIza-test",
        client=_mock_http(side_effect=httpx.ConnectError("unreachable", request=request)),
    )

    with pytest.raises(OCRError, match="request failed"):
        await client.extract_text(b"fake-image")


@pytest.mark.anyio
async def test_aclose_closes_client() -> None:
    mock_client = _mock_http()
    mock_client.aclose = AsyncMock()
    client = VisionClient(api_key="AIza-test", client=mock_client)

    await client.aclose()

    mock_client.aclose.assert_awaited_once()


@pytest.mark.anyio
async def test_aclose_skips_closed_client() -> None:
    mock_client = _mock_http()
    mock_client.is_closed = True
    mock_client.aclose = AsyncMock()
    client = VisionClient(api_key="AIza-test", client=mock_client)

    await client.aclose()

    mock_client.aclose.assert_not_called()
