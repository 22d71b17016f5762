from tgrelay.telegram.api_models import (
    ChatMember,
    command_args,
    command_name,
    decode_chat_member,
    decode_update,
    is_command,
    is_private,
)
from tests.relay_fakes import message_update, reply_to_bot


def test_decode_update_maps_fields() -> None:
    update = decode_update(
        message_update(
            update_id=3,
            message_id=10,
            chat_id=-55,
            chat_type="supergroup",
            sender=99,
            text="hello",
            reply_to=reply_to_bot(message_id=4),
        )
    )

    assert update is not None
    assert update.update_id == 3
    msg = update.message
    assert msg is not None
    assert msg.message_id == 10
    assert msg.chat.id == -55
    assert msg.from_ is not None and msg.from_.id == 99
    assert msg.reply_to_message is not None
    assert msg.reply_to_message.message_id == 4
    assert msg.reply_to_message.from_ is not None
    assert msg.reply_to_message.from_.is_bot is True
    assert is_private(msg) is False


def test_decode_update_ignores_unknown_fields() -> None:
    update = decode_update({"update_id": 1, "poll": {"id": "x"}, "extra": True})
    assert update is not None
    assert update.message is None


def test_decode_update_rejects_invalid_payload() -> None:
    assert decode_update({"message": {"message_id": 1}}) is None


def test_command_parsing() -> None:
    update = decode_update(message_update(text="/Limiter@relay_bot  off "))
    assert update is not None and update.message is not None
    msg = update.message
    assert is_command(msg) is True
    assert command_name(msg) == "limiter"
    assert command_args(msg) == "off"


def test_slash_without_entity_is_not_command() -> None:
    update = decode_update(message_update(text="plain"))
    assert update is not None and update.message is not None
    msg = update.message
    msg.text = "/not-a-command"
    assert is_command(msg) is False
    assert command_name(msg) is None
    assert command_args(msg) == ""


def test_command_entity_without_text_is_not_command() -> None:
    update = decode_update(message_update(text="/ping"))
    assert update is not None and update.message is not None
    msg = update.message
    msg.text = None
    assert msg.entities
    assert is_command(msg) is False
    assert command_name(msg) is None
    assert command_args(msg) == ""


def test_decode_chat_member() -> None:
    member = decode_chat_member({"status": "kicked", "user": {"id": 1}})
    assert isinstance(member, ChatMember)
    assert member.is_member is False
    assert decode_chat_member({"status": "administrator"}).is_member is True
    assert decode_chat_member(None) is None
    assert decode_chat_member({"user": {"id": 1}}) is None


def test_display_name() -> None:
    update = decode_update(message_update(sender=5))
    assert update is not None and update.message is not None
    assert update.message.from_ is not None
    assert update.message.from_.display_name() == "user5"
