from unittest.mock import AsyncMock

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.constants import ParseMode
from telegram.error import BadRequest

from bragfy.markdown import (
    ACTIVITY_DIVIDER,
    CONTINUATION_HEADER,
    EMPTY_TEXT_NOTICE,
    escape_markdown,
    send_safe_markdown,
    split_long_message,
)


def brag_document(blocks=40):
    header = "📋 *BRAG DOCUMENT*\n\n👤 *Ana*\n\n*ATIVIDADES*\n"
    body = f"\n{ACTIVITY_DIVIDER}\n".join(
        f"📅 _05/03/25 10:{n:02d}:00_\n📝 Atividade {n} " + "x" * 150 for n in range(blocks)
    )
    return header + body


def test_escape_markdown():
    assert escape_markdown("bug_fix *urgente* [link]") == "bug\\_fix \\*urgente\\* \\[link]"
    assert escape_markdown("") == ""
    assert escape_markdown(None) == ""


def test_split_short_and_empty():
    assert split_long_message("") == []
    assert split_long_message("olá") == ["olá"]


def test_split_plain_text_prefers_newlines():
    text = "\n".join("linha %03d %s" % (n, "y" * 40) for n in range(200))

    parts = split_long_message(text, max_length=1000)

    assert len(parts) > 1
    assert all(len(part) <= 1000 for part in parts)
    assert all(part.startswith("linha") for part in parts)


def test_split_without_separators_cuts_hard():
    parts = split_long_message("a" * 2500, max_length=1000)

    assert [len(p) for p in parts] == [1000, 1000, 500]


def test_split_brag_document_by_activity():
    text = brag_document()

    parts = split_long_message(text, max_length=2000)

    assert parts[0].endswith("*ATIVIDADES*\n")
    assert len(parts) > 2
    assert all(len(part) <= 2000 for part in parts)
    for part in parts[2:]:
        assert part.startswith(CONTINUATION_HEADER)
    assert all(part.count("*") % 2 == 0 for part in parts)


async def test_send_safe_markdown_single_part():
    bot = AsyncMock()

    await send_safe_markdown(bot, 1, "*oi*")

    bot.send_message.assert_awaited_once_with(chat_id=1, text="*oi*", parse_mode=ParseMode.MARKDOWN)


async def test_send_safe_markdown_keyboard_only_on_first_part():
    bot = AsyncMock()
    keyboard = InlineKeyboardMarkup([[InlineKeyboardButton("PDF", callback_data="pdf:7")]])

    messages = await send_safe_markdown(bot, 1, brag_document(), reply_markup=keyboard)

    calls = bot.send_message.await_args_list
    assert len(messages) == len(calls) > 1
    assert calls[0].kwargs["reply_markup"] is keyboard
    assert all("reply_markup" not in call.kwargs for call in calls[1:])


async def test_send_safe_markdown_falls_back_to_plain_text():
    bot = AsyncMock()
    bot.send_message.side_effect = [BadRequest("Can't parse entities"), "ok"]

    messages = await send_safe_markdown(bot, 1, "*quebrado")

    assert messages == ["ok"]
    assert "parse_mode" not in bot.send_message.await_args_list[1].kwargs


async def test_send_safe_markdown_empty_text():
    bot = AsyncMock()

    await send_safe_markdown(bot, 1, "")

    bot.send_message.assert_awaited_once_with(chat_id=1, text=EMPTY_TEXT_NOTICE)
