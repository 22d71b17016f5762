from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ChatTask:
    """One admitted question waiting for an answer.

    Created at admission, filled in once by the worker, dropped after the reply
    is sent. Never persisted.
    """

    question: str
    chat_id: int
    user_id: int
    message_id: int
    answer: str = ""
