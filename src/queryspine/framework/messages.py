"""Rendering of non-fatal query messages into output text."""

import html
from collections.abc import Callable, Sequence

MessageEncoder = Callable[[Sequence[str]], str]


def encode_messages(messages: Sequence[str]) -> str:
    """
    Render messages as an HTML list inside a marker span.

    Returns an empty string when there is nothing to report, so callers can
    append the result unconditionally.
    """
    messages = [message for message in messages if message]
    if not messages:
        return ""
    items = "".join(f"<li>{html.escape(message)}</li>" for message in messages)
    return f'<span class="queryspine-messages"><ul>{items}</ul></span>'
