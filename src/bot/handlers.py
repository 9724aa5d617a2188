"""aiogram message handlers.

Hard contract: every incoming message produces exactly one reply. Free text goes through the
two-stage pipeline; low-confidence interpretations are shown back with an intent envelope that
`/confirm` (sent as a reply to that message) executes verbatim. Internal errors are logged and
answered with a fixed message that never contains SQL or parameter values.
"""

from __future__ import annotations

import logging
from time import monotonic

from aiogram.filters import CommandObject
from aiogram.types import Message

from src.app import App
from src.bot.formatting import parse_intent_envelope, render_domains, render_examples, render_response
from src.domains.registry import DomainNotFoundError
from src.query.compiler import QueryExecutionError
from src.service.controller import InvalidInputError

logger = logging.getLogger(__name__)

GENERIC_ERROR_REPLY = "אירעה שגיאה פנימית. נסה שוב מאוחר יותר."
EMPTY_QUERY_REPLY = "שלח שאלה על התקציב, למשל: כמה תב״רים פעילים יש?"
CONFIRM_USAGE_REPLY = "כדי לאשר, השב /confirm להודעה שבה הוצגה הפרשנות."
INVALID_CONFIRM_REPLY = "לא ניתן לאשר את הפרשנות הזו. נסח את השאלה מחדש."
HELP_REPLY = (
    "שאל שאלות על תקציב העירייה בשפה חופשית.\n"
    "/domains - תחומים זמינים\n"
    "/examples - דוגמאות לשאלות\n"
    "/confirm - אישור פרשנות בביטחון נמוך (כתשובה להודעה)"
)


def _is_command_text(text: str) -> bool:
    return text.lstrip().startswith("/")


async def handle_message(message: Message, app: App) -> None:
    """Handle free text: run `process` and reply once with the rendered response."""

    started = monotonic()
    raw_text = message.text or message.caption or ""
    if not raw_text.strip() or _is_command_text(raw_text):
        await message.answer(EMPTY_QUERY_REPLY if not raw_text.strip() else HELP_REPLY)
        return

    # noinspection PyBroadException
    try:
        response = await app.controller.process(raw_text)
        reply = render_response(response, original_query=raw_text)
        logger.info(
            "handled stage=%s latency_ms=%d",
            response.stage,
            int((monotonic() - started) * 1000),
        )
    except InvalidInputError:
        reply = EMPTY_QUERY_REPLY
    except QueryExecutionError as exc:
        logger.info("execution failed domain=%s", exc.domain)
        reply = exc.public_message
    except Exception:
        # Handler boundary: any internal error still gets exactly one reply.
        logger.exception("handler failed")
        reply = GENERIC_ERROR_REPLY

    await message.answer(reply)


async def handle_confirm(message: Message, app: App) -> None:
    """Execute the intent envelope of the replied-to message without re-parsing."""

    replied = message.reply_to_message
    envelope = parse_intent_envelope(replied.text if replied else None)
    if envelope is None:
        await message.answer(CONFIRM_USAGE_REPLY)
        return

    parsed_intent, original_query = envelope
    # noinspection PyBroadException
    try:
        response = await app.controller.confirm(parsed_intent, original_query)
        reply = render_response(response, original_query=original_query)
    except InvalidInputError as exc:
        logger.info("confirm rejected: %s", exc)
        reply = INVALID_CONFIRM_REPLY
    except Exception:
        logger.exception("confirm handler failed")
        reply = GENERIC_ERROR_REPLY

    await message.answer(reply)


async def handle_domains(message: Message, app: App) -> None:
    await message.answer(render_domains(app.controller.list_domains()))


async def handle_examples(message: Message, app: App, command: CommandObject) -> None:
    """`/examples [domain]`: example queries, optionally for one domain."""

    domain = (command.args or "").strip() or None
    try:
        reply = render_examples(app.controller.examples(domain))
    except DomainNotFoundError:
        reply = f"תחום לא מוכר: {domain}"
    await message.answer(reply)


async def handle_help(message: Message) -> None:
    await message.answer(HELP_REPLY)
