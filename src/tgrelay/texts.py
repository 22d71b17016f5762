from __future__ import annotations

START_TEXT = (
    "Hi, I'm ChatGPT bot. I can chat with you. "
    "Just send me a sentence and I will reply you.\n\n"
    "请在这条消息下回复你的问题，我会回复你的。"
)
PING_TEXT = "pong"
UNKNOWN_COMMAND_TEXT = "I don't know that command"
NOT_ADMIN_TEXT = "you are not an admin, this command is not available to you."
BUSY_TEXT = "you are chatting with me, please wait for a while."
EMPTY_ANSWER_TEXT = "I have nothing to say about that, please try again."
HELP_TEXT = (
    "/chatgpt - how to talk to me\n"
    "/ping - check that I'm alive\n"
    "/help - this message"
)
ADMIN_HELP_TEXT = (
    "/limiter on|off - toggle the membership check\n"
    "/status - show active sessions and queued tasks"
)


def join_notice(channel: str, group: str) -> str:
    return (
        f"You should join channel {channel} and group {group}, "
        "then you can talk to me"
        "\n\n"
        f"你需要加入频道 {channel} 和群组 {group}，然后才能和我交谈"
    )


def completion_error_text(error: str) -> str:
    return f"error: {error}"
