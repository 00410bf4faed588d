"""TelegramClient request shapes and error mapping."""

import json

import httpx
import pytest

from relay_assistant.transport.telegram import TelegramClient, TransportError


def make_client(handler, **kwargs):
    return TelegramClient("123:abc", transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_send_message_returns_id_and_posts_json():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 77}})

    client = make_client(handler, parse_mode="Markdown")
    message_id = await client.send_message(5, "hi", {"inline_keyboard": []})
    await client.aclose()

    assert message_id == 77
    assert seen["url"] == "https://api.telegram.org/bot123:abc/sendMessage"
    assert seen["body"] == {
        "chat_id": 5,
        "text": "hi",
        "reply_markup": {"inline_keyboard": []},
        "parse_mode": "Markdown",
    }


@pytest.mark.asyncio
async def test_edit_answer_and_delete():
    calls = []

    def handler(request):
        calls.append((request.url.path.rsplit("/", 1)[-1], json.loads(request.content)))
        return httpx.Response(200, json={"ok": True, "result": True})

    client = make_client(handler)
    await client.edit_message_text(5, 9, "new")
    await client.answer_callback_query("cb")
    await client.answer_callback_query("cb", "done")
    await client.delete_message(5, 9)
    await client.aclose()

    assert calls == [
        ("editMessageText", {"chat_id": 5, "message_id": 9, "text": "new"}),
        ("answerCallbackQuery", {"callback_query_id": "cb"}),
        ("answerCallbackQuery", {"callback_query_id": "cb", "text": "done"}),
        ("deleteMessage", {"chat_id": 5, "message_id": 9}),
    ]


@pytest.mark.asyncio
async def test_not_ok_response_raises():
    def handler(request):
        return httpx.Response(429, json={"ok": False, "description": "Too Many Requests: retry after 3"})

    client = make_client(handler)
    with pytest.raises(TransportError) as exc_info:
        await client.edit_message_text(5, 9, "x")

    assert exc_info.value.method == "editMessageText"
    assert exc_info.value.status_code == 429
    assert "Too Many Requests" in str(exc_info.value)


@pytest.mark.asyncio
async def test_connection_error_raises_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler)
    with pytest.raises(TransportError) as exc_info:
        await client.send_message(5, "hi")
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_send_without_message_id_raises():
    def handler(request):
        return httpx.Response(200, json={"ok": True, "result": {}})

    client = make_client(handler)
    with pytest.raises(TransportError):
        await client.send_message(5, "hi")
