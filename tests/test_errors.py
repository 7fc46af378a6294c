from types import SimpleNamespace

import pytest
from structlog.testing import capture_logs

from khata.db.repo import NotFoundError
from khata.handlers.errors import on_denied, on_unexpected
from khata.handlers.groups import callback_group_id
from khata.services.authz import AuthorizationError


class StubMessage:
    def __init__(self) -> None:
        self.answers: list[str] = []

    async def answer(self, text: str, **kwargs) -> None:
        self.answers.append(text)


class StubCallback:
    def __init__(self, data: str = "") -> None:
        self.data = data
        self.alerts: list[tuple[str, bool]] = []

    async def answer(self, text: str = "", show_alert: bool = False, **kwargs) -> None:
        self.alerts.append((text, show_alert))


def error_event(exception, message=None, callback=None):
    return SimpleNamespace(
        exception=exception,
        update=SimpleNamespace(message=message, callback_query=callback),
    )


@pytest.mark.asyncio
async def test_denied_replies_to_message():
    message = StubMessage()

    await on_denied(error_event(AuthorizationError("You are not a member of this group."), message=message))

    assert message.answers == ["❌ You are not a member of this group."]


@pytest.mark.asyncio
async def test_not_found_alerts_callback():
    callback = StubCallback()

    await on_denied(error_event(NotFoundError("Group #5 not found."), callback=callback))

    assert callback.alerts == [("❌ Group #5 not found.", True)]


@pytest.mark.asyncio
async def test_unexpected_is_logged_with_generic_reply():
    message = StubMessage()

    with capture_logs() as logs:
        await on_unexpected(error_event(RuntimeError("pool closed"), message=message))

    assert message.answers == ["Something went wrong, please try again later."]
    assert logs[0]["event"] == "request.failed"
    assert logs[0]["log_level"] == "error"


@pytest.mark.asyncio
async def test_callback_group_id():
    assert await callback_group_id(StubCallback("settle:12")) == 12

    stale = StubCallback("settle:abc")
    assert await callback_group_id(stale) is None
    assert stale.alerts == [("This button is out of date.", True)]
