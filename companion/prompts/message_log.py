"""
Render a stored chat log as conversation turns.

The chat layer keeps messages newest-first.  ``message_log`` turns them into
chronological ``Message`` objects ready to seed a ``Chain``:

  - the companion's own messages become ``assistant`` turns, everything
    else becomes ``user`` turns;
  - system events (no author) are wrapped in an ``<event>`` element;
  - regular messages get a ``<context><messageInfo .../></context>`` header
    naming the author;
  - the date attribute only appears when it differs from the previous
    message's date;
  - messages younger than a minute carry seconds in their time attribute.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from html import escape
from typing import Iterable

from companion.llm.types import Message, Role

OWN_USER_ID = "00000000-0000-0000-0000-000000000000"

DATE_FORMAT = "%A %Y-%m-%d"
TIME_FORMAT_LONG = "%H:%M:%S"
TIME_FORMAT_SHORT = "%H:%M"


@dataclass
class MessageLogItem:
    user_id: str | None
    user_name: str
    content: str
    created_at: datetime

    @property
    def is_event(self) -> bool:
        return self.user_id is None

    @property
    def is_own_message(self) -> bool:
        return self.user_id == OWN_USER_ID


def _attrs(**values: str | None) -> str:
    return "".join(
        f' {name}="{escape(value)}"'
        for name, value in values.items()
        if value is not None
    )


def message_log(
    items: Iterable[MessageLogItem],
    now: datetime | None = None,
) -> list[Message]:
    """Convert newest-first log *items* into chronological messages."""
    now = now or datetime.now(timezone.utc)
    last_date: date | None = None
    messages: list[Message] = []

    for item in reversed(list(items)):
        created = item.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        created = created.astimezone(timezone.utc)

        day = created.date()
        date_attr = None
        if last_date != day:
            last_date = day
            date_attr = day.strftime(DATE_FORMAT)

        if (now - created).total_seconds() < 60:
            time_attr = created.strftime(TIME_FORMAT_LONG)
        else:
            time_attr = created.strftime(TIME_FORMAT_SHORT)

        role = Role.ASSISTANT if item.is_own_message else Role.USER

        if item.is_event:
            content = (
                f"<event{_attrs(date=date_attr, time=time_attr)}>"
                f"{escape(item.content)}</event>"
            )
        else:
            info = _attrs(date=date_attr, time=time_attr)
            info += _attrs(**{"from": item.user_name})
            content = f"<context><messageInfo{info}/></context>\n{item.content}"

        messages.append(Message.text(role, content))

    return messages
