"""
bragfy/markdown.py — Envio seguro de Markdown no Telegram

Textos longos são quebrados no limite da API; partes que o Telegram recusa
por erro de parsing são reenviadas como texto puro.
"""

import logging
import re

from telegram.constants import ParseMode
from telegram.error import BadRequest
from telegram.helpers import escape_markdown as _escape_markdown

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000

BRAG_TITLE = "*BRAG DOCUMENT*"
ACTIVITIES_HEADER = "*ATIVIDADES*"
ACTIVITY_DIVIDER = "· · · · · · · · · ·"
CONTINUATION_HEADER = "*ATIVIDADES (continuação)*\n"

_DIVIDER_PATTERNS = [
    re.compile(re.escape(f"\n{ACTIVITY_DIVIDER}\n")),
    re.compile(r"\n_\d{4}-\d{2}-\d{2}_\n"),
]

EMPTY_TEXT_NOTICE = "Não foi possível enviar a mensagem (vazia)"


def escape_markdown(text: str) -> str:
    """Escapa os caracteres especiais do Markdown legado do Telegram."""
    if not text:
        return ""
    return _escape_markdown(text, version=1)


def is_brag_document(text: str) -> bool:
    return BRAG_TITLE in text and ACTIVITIES_HEADER in text


def _unbalanced(prefix: str) -> bool:
    return prefix.count("*") % 2 != 0 or prefix.count("_") % 2 != 0


def _adjust_for_markup(remaining: str, split_pos: int, margin: int) -> int:
    """Recua o corte para uma quebra de linha se ele cair dentro de * ou _."""
    if _unbalanced(remaining[:split_pos]):
        safe_pos = remaining.rfind("\n", 0, max(split_pos - margin, 0) + 1)
        if safe_pos > 0 and safe_pos > split_pos / 2:
            return safe_pos
    return split_pos


def _split_plain(text: str, max_length: int):
    parts = []
    remaining = text
    while remaining:
        if len(remaining) <= max_length:
            parts.append(remaining)
            break

        split_pos = remaining.rfind("\n", 0, max_length + 1)
        if split_pos == -1 or split_pos < max_length / 2:
            split_pos = remaining.rfind(" ", 0, max_length + 1)
        if split_pos == -1 or split_pos < max_length / 2:
            split_pos = max_length

        split_pos = _adjust_for_markup(remaining, split_pos, 20)
        parts.append(remaining[:split_pos])
        remaining = remaining[split_pos:].strip()
    return parts


def _split_brag_document(text: str, max_length: int):
    header_end = text.find("\n", text.index(ACTIVITIES_HEADER))
    if header_end == -1:
        return []

    header = text[:header_end + 1]
    if len(header) > max_length:
        return []

    parts = [header]
    remaining = text[header_end + 1:]
    # Reserva espaço para o cabeçalho de continuação
    window = max_length - len(CONTINUATION_HEADER)

    while remaining:
        if len(remaining) <= max_length:
            parts.append(remaining)
            break

        split_pos = -1
        for pattern in _DIVIDER_PATTERNS:
            for match in pattern.finditer(remaining):
                if match.start() >= window:
                    break
                if match.start() > split_pos:
                    split_pos = match.start()

        if split_pos <= 0:
            split_pos = remaining.rfind("\n", 0, window + 1)
        if split_pos == -1 or split_pos < window / 2:
            split_pos = window

        split_pos = _adjust_for_markup(remaining, split_pos, 50)
        parts.append(remaining[:split_pos])
        remaining = remaining[split_pos:].strip()
        if remaining.startswith(ACTIVITY_DIVIDER):
            remaining = remaining[len(ACTIVITY_DIVIDER):].strip()
        if remaining:
            remaining = CONTINUATION_HEADER + remaining

    return parts


def split_long_message(text: str, max_length: int = MAX_MESSAGE_LENGTH):
    """Divide o texto em partes de no máximo `max_length` caracteres."""
    if not text:
        return []
    if len(text) <= max_length:
        return [text]

    parts = []
    if is_brag_document(text):
        logger.info("[TELEGRAM] Detectado Brag Document, dividindo por blocos de atividade")
        parts = _split_brag_document(text, max_length)

    if not parts:
        parts = _split_plain(text, max_length)

    logger.info(f"[TELEGRAM] Mensagem dividida em {len(parts)} partes")
    return parts


async def send_safe_markdown(bot, chat_id: int, text: str, **kwargs):
    """
    Envia `text` com parse_mode Markdown, em quantas partes forem necessárias.

    Apenas a primeira parte leva o `reply_markup`. Retorna a lista de
    mensagens enviadas.
    """
    if not text:
        return [await bot.send_message(chat_id=chat_id, text=EMPTY_TEXT_NOTICE)]

    kwargs.setdefault("parse_mode", ParseMode.MARKDOWN)
    parts = split_long_message(text)
    messages = []

    for index, part in enumerate(parts):
        options = dict(kwargs)
        if index > 0:
            options.pop("reply_markup", None)

        try:
            messages.append(await bot.send_message(chat_id=chat_id, text=part, **options))
        except BadRequest as e:
            logger.warning(f"[TELEGRAM] Markdown recusado na parte {index + 1}/{len(parts)}: {e}. Enviando como texto puro")
            options.pop("parse_mode", None)
            messages.append(await bot.send_message(chat_id=chat_id, text=part, **options))

    return messages
