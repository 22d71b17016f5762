import pytest

from tgrelay.membership import MembershipGate, chat_handle
from tests.relay_fakes import CHANNEL, GROUP, _FakeBot


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("relay_channel", "@relay_channel"),
        ("@relay_channel", "@relay_channel"),
        ("  relay_group ", "@relay_group"),
        ("-1001234", "-1001234"),
    ],
)
def test_chat_handle(name: str, expected: str) -> None:
    assert chat_handle(name) == expected


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("status", "expected"),
    [
        ("creator", True),
        ("administrator", True),
        ("member", True),
        ("restricted", True),
        ("left", False),
        ("kicked", False),
    ],
)
async def test_is_member_by_status(fake_bot: _FakeBot, status: str, expected: bool) -> None:
    fake_bot.members[(CHANNEL, 1)] = status
    gate = MembershipGate(fake_bot, channel=CHANNEL, group=GROUP)
    assert await gate.is_member(CHANNEL, 1) is expected


@pytest.mark.anyio
async def test_query_failure_is_not_member(fake_bot: _FakeBot) -> None:
    gate = MembershipGate(fake_bot, channel=CHANNEL, group=GROUP)
    assert await gate.is_member(CHANNEL, 1) is False


@pytest.mark.anyio
async def test_malformed_member_payload_is_not_member() -> None:
    class _Bot(_FakeBot):
        async def get_chat_member(self, chat_id, user_id):
            return {"unexpected": True}

    gate = MembershipGate(_Bot(), channel=CHANNEL, group=GROUP)
    assert await gate.is_member(CHANNEL, 1) is False


@pytest.mark.anyio
async def test_allows_requires_both_and_always_checks_both(fake_bot: _FakeBot) -> None:
    gate = MembershipGate(fake_bot, channel="relay_channel", group="relay_group")
    fake_bot.members[(GROUP, 1)] = "member"

    assert await gate.allows(1) is False
    assert fake_bot.member_queries == [(CHANNEL, 1), (GROUP, 1)]

    fake_bot.members[(CHANNEL, 1)] = "member"
    assert await gate.allows(1) is True
    assert len(fake_bot.member_queries) == 4
