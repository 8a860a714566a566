"""
services/context_window.py
--------------------------
Builds the turn sequence handed to the generation service:

    [persona instruction] + [latest N prior messages, oldest first] + [new message]

AI messages become role "model", everything else role "user". The
persona is sent as an ordinary user turn ahead of the history.
"""

from dataclasses import dataclass
from typing import Iterable, Literal

from chat_backend.models.message import Message

Role = Literal["user", "model"]


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str


def to_turns(messages: Iterable[Message]) -> list[Turn]:
    return [
        Turn(role="model" if message.is_ai else "user", content=message.content)
        for message in messages
    ]


def build_context(
    history: Iterable[Message],
    new_message: str,
    persona: str,
) -> list[Turn]:
    turns = [Turn(role="user", content=persona)]
    turns.extend(to_turns(history))
    turns.append(Turn(role="user", content=new_message))
    return turns
