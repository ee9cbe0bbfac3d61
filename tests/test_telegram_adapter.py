import json

import httpx
import pytest

from wibot.errors import TelegramError
from wibot.telegram_adapter import TelegramAdapter


def _adapter(handler) -> TelegramAdapter:
    return TelegramAdapter(
        token="123:abc",
        poll_timeout_seconds=1,
        request_timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )


def _update(update_id: int, text: str, chat_id: int = 55, user: dict | None = None) -> dict:
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id * 10,
            "date": 1700000000,
            "chat": {"id": chat_id, "type": "private"},
            "from": user or {"id": 7, "username": "alice"},
            "text": text,
        },
    }


@pytest.mark.asyncio
async def test_get_me_hits_bot_endpoint():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True, "result": {"id": 1, "username": "wibot"}})

    identity = await _adapter(handler).get_me()

    assert identity["username"] == "wibot"
    assert seen[0].url.host == "api.telegram.org"
    assert seen[0].url.path == "/bot123:abc/getMe"


@pytest.mark.asyncio
async def test_send_message_uses_markdown_v2():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

    await _adapter(handler).send_message(55, "hi\\!")

    assert bodies == [{"chat_id": 55, "text": "hi\\!", "parse_mode": "MarkdownV2"}]


@pytest.mark.asyncio
async def test_api_error_raises_without_leaking_token():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"ok": False, "error_code": 400, "description": "Bad Request: can't parse entities"},
        )

    with pytest.raises(TelegramError) as excinfo:
        await _adapter(handler).send_message(55, "*broken")
    assert "can't parse entities" in str(excinfo.value)
    assert "123:abc" not in str(excinfo.value)


@pytest.mark.asyncio
async def test_network_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TelegramError) as excinfo:
        await _adapter(handler).get_me()
    assert "123:abc" not in str(excinfo.value)


@pytest.mark.asyncio
async def test_get_updates_advances_offset():
    offsets: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        offsets.append(json.loads(request.content)["offset"])
        return httpx.Response(200, json={"ok": True, "result": [_update(5, "/help"), _update(6, "/list")]})

    adapter = _adapter(handler)
    await adapter.get_updates()
    await adapter.get_updates()

    assert offsets == [0, 7]


@pytest.mark.asyncio
async def test_poll_messages_yields_commands_only():
    batches = [
        [_update(1, "hello"), _update(2, " /ask@wibot hi "), {"update_id": 3, "edited_message": {}}],
        [_update(4, "/list", user={"id": 9})],
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": True, "result": batches.pop(0) if batches else []})

    adapter = _adapter(handler)
    messages = []
    async for message in adapter.poll_messages():
        messages.append(message)
        if len(messages) == 2:
            break

    assert [m.text for m in messages] == ["/ask@wibot hi", "/list"]
    assert messages[0].chat_id == 55
    assert messages[0].user_id == 7
    assert messages[0].username == "alice"
    assert messages[1].username is None
