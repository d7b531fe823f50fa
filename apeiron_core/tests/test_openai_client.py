import base64

import httpx
import pytest

from apeiron_core.domain.events import CitationBatch, ImageEmitted, StreamEnd, TokenDelta
from apeiron_core.domain.exceptions import ConfigurationError, StreamCancelled, TransportError
from apeiron_core.domain.models import Attachment, Citation, Message
from apeiron_core.providers import create_provider
from apeiron_core.providers.base import StreamRequest

from wire_helpers import Recorder, SettingsStub, collect


def _client(recorder, provider_id="openrouter"):
    return create_provider(provider_id, SettingsStub(), transport=recorder.transport)


def _request(**kw):
    kw.setdefault("api_key", "sk-test")
    kw.setdefault("model", "openai/gpt-5.2-chat")
    kw.setdefault("messages", [Message(id="u1", role="user", content="hi")])
    return StreamRequest(**kw)


@pytest.mark.asyncio
async def test_split_token_then_done():
    first = 'data: {"choices":[{"delta":{"content":"Hel'
    second = 'lo"}}]}\n\ndata: [DONE]\n\n'
    rec = Recorder(first, second)
    events = await collect(_client(rec).stream(_request()))
    assert events == [TokenDelta("Hello"), StreamEnd(reason="done")]


@pytest.mark.asyncio
async def test_request_shape_and_auth():
    rec = Recorder("data: [DONE]\n\n")
    req = _request(system_prompt="be brief", supports_images=True, plugins=[{"id": "web"}])
    await collect(_client(rec).stream(req))
    request = rec.requests[0]
    assert str(request.url) == "https://openrouter.ai/api/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer sk-test"
    body = rec.last_json
    assert body["model"] == "openai/gpt-5.2-chat"
    assert body["stream"] is True
    assert body["messages"][0] == {"role": "system", "content": "be brief"}
    assert body["messages"][1] == {"role": "user", "content": "hi"}
    assert body["modalities"] == ["text", "image"]
    assert body["plugins"] == [{"id": "web"}]


@pytest.mark.asyncio
async def test_request_omits_optional_fields():
    rec = Recorder("data: [DONE]\n\n")
    await collect(_client(rec, "deepseek").stream(_request(model="deepseek-chat")))
    body = rec.last_json
    assert str(rec.requests[0].url) == "https://api.deepseek.com/v1/chat/completions"
    assert "modalities" not in body
    assert "plugins" not in body
    assert body["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_attachments_become_content_parts():
    text_payload = base64.b64encode("print('hi')".encode("utf-8")).decode("ascii")
    msg = Message(
        id="u1",
        role="user",
        content="look",
        attachments=[
            Attachment(name="cat.png", mime_type="image/png", content="data:image/png;base64,AAAA"),
            Attachment(name="main.py", mime_type="text/x-python", content=f"data:text/x-python;base64,{text_payload}"),
        ],
    )
    rec = Recorder("data: [DONE]\n\n")
    await collect(_client(rec).stream(_request(messages=[msg])))
    parts = rec.last_json["messages"][0]["content"]
    assert parts == [
        {"type": "text", "text": "look"},
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
        {"type": "text", "text": "[File: main.py]\nprint('hi')"},
    ]


@pytest.mark.asyncio
async def test_annotations_become_citation_batch():
    rec = Recorder(
        'data: {"choices":[{"delta":{"annotations":[{"url_citation":{"url":"https://x.com","title":"X"}}]}}]}\n\n',
        "data: [DONE]\n\n",
    )
    events = await collect(_client(rec).stream(_request()))
    assert events[0] == CitationBatch([Citation(url="https://x.com", title="X", content=None)])
    assert events[-1] == StreamEnd(reason="done")


@pytest.mark.asyncio
async def test_annotations_probed_from_message_content():
    rec = Recorder(
        'data: {"choices":[{"message":{"content":[{"annotations":[{"url":"https://y.com"}]}]}}]}\n\n',
    )
    events = await collect(_client(rec).stream(_request()))
    assert events == [CitationBatch([Citation(url="https://y.com")]), StreamEnd(reason="eof")]


@pytest.mark.asyncio
async def test_images_from_delta_and_message():
    rec = Recorder(
        'data: {"choices":[{"delta":{"images":[{"image_url":{"url":"data:image/png;base64,1"}}]}}]}\n\n',
        'data: {"choices":[{"message":{"images":[{"url":"https://img/2.png"},{"bogus":1}]}}]}\n\n',
        "data: [DONE]\n\n",
    )
    events = await collect(_client(rec).stream(_request()))
    assert events == [
        ImageEmitted("data:image/png;base64,1"),
        ImageEmitted("https://img/2.png"),
        StreamEnd(reason="done"),
    ]


@pytest.mark.asyncio
async def test_unparsable_frames_are_skipped():
    rec = Recorder(
        "data: {broken\n\n",
        'data: {"choices":[{"delta":{"content":"ok"}}]}\n\n',
        "data: [DONE]\n\n",
    )
    events = await collect(_client(rec).stream(_request()))
    assert events == [TokenDelta("ok"), StreamEnd(reason="done")]


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_network():
    rec = Recorder("data: [DONE]\n\n")
    with pytest.raises(ConfigurationError) as exc:
        await collect(_client(rec).stream(_request(api_key="")))
    assert exc.value.code == "MISSING_API_KEY"
    assert rec.requests == []


@pytest.mark.asyncio
async def test_error_status_surfaces_server_text():
    rec = Recorder(status_code=401, error_text='{"error":"invalid key"}')
    with pytest.raises(TransportError) as exc:
        await collect(_client(rec).stream(_request()))
    assert exc.value.message == '{"error":"invalid key"}'
    assert exc.value.http_status == 401


@pytest.mark.asyncio
async def test_network_failure_wrapped_as_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    client = create_provider("openai", SettingsStub(), transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError) as exc:
        await collect(client.stream(_request()))
    assert exc.value.code == "NETWORK_ERROR"


@pytest.mark.asyncio
async def test_cancellation_stops_before_next_read():
    reads = []

    async def body():
        reads.append(1)
        yield b'data: {"choices":[{"delta":{"content":"a"}}]}\n\n'
        reads.append(2)
        yield b'data: {"choices":[{"delta":{"content":"b"}}]}\n\n'

    def handler(request):
        return httpx.Response(200, content=body())

    client = create_provider("openrouter", SettingsStub(), transport=httpx.MockTransport(handler))
    req = _request()
    received = []
    with pytest.raises(StreamCancelled):
        async for event in client.stream(req):
            received.append(event)
            req.cancellation.cancel()
    assert received == [TokenDelta("a")]
    assert reads == [1]


@pytest.mark.asyncio
async def test_base_url_override():
    class OverrideSettings(SettingsStub):
        base_url_overrides = {"openai": "http://localhost:8080/v1/"}

    rec = Recorder("data: [DONE]\n\n")
    client = create_provider("openai", OverrideSettings(), transport=rec.transport)
    await collect(client.stream(_request()))
    assert str(rec.requests[0].url) == "http://localhost:8080/v1/chat/completions"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [301, 302, 304])
async def test_non_success_status_below_400_is_transport_error(status):
    rec = Recorder(status_code=status, error_text="")
    with pytest.raises(TransportError) as exc:
        await collect(_client(rec).stream(_request()))
    assert exc.value.code == "API_ERROR"
    assert exc.value.message == "Request failed"
    assert exc.value.http_status == status


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [204, 205])
async def test_success_status_without_body_is_transport_error(status):
    rec = Recorder(status_code=status, error_text="")
    with pytest.raises(TransportError) as exc:
        await collect(_client(rec).stream(_request()))
    assert exc.value.code == "EMPTY_BODY"
    assert exc.value.message == "Request failed"
    assert exc.value.http_status == status
