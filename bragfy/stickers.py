import logging
import random

from telegram.error import TelegramError

logger = logging.getLogger(__name__)

_ONBOARDING = [
    "CAACAgEAAxkBAAEOLdFn5xfspnjtn2Dj0O4M4DfSUPYUhAACWwcAAr-MkAT_2_Ok8Yw0zjYE",
    "CAACAgEAAxkBAAEOLt1n6AUvXI5H7ZsTcxsacZ_bQYI6AQACWgcAAr-MkAS28TuOYHM0EzYE",
    "CAACAgIAAxkBAAEN1PNntCwsfN50bB74ZPhvIsdVakn7OgACAQEAAladvQoivp8OuMLmNDYE",
    "CAACAgEAAxkBAAEOLuFn6AWOWnZgfFdjV8mqx7pleuHbuwACIQIAAkWd3QXadBWdq01gFTYE",
    "CAACAgIAAxkBAAEOLuNn6AXdbGjpR0XE-Cowzy1rtcl5bgACfgUAAvoLtghVynd3kd-TuDYE",
]

STICKER_MAP = {
    "onboarding": _ONBOARDING,
    "new_activity": [
        "CAACAgIAAxkBAAEN1u9ntNLGPdiveCy_xoajSoDoEAsgLAAC9AADVp29ChFYsPXZ_VVJNgQ",
        "CAACAgEAAxkBAAEOLcln5xeJILga9ba2Y_RACrtXa-JVoAACWAEAAlBLwgNF1HUIrz7N4DYE",
        "CAACAgEAAxkBAAEOLcVn5xd9AAGWi8ZdD1MJteKH4UKg5YEAAigBAAJQS8IDzwMJl2zDu7A2BA",
        "CAACAgEAAxkBAAEOLuln6AZSYJlItkToYAAB8QZbMTt5LOEAAhoCAAJFnd0Ftr-Y7AABFLVYNgQ",
        "CAACAgEAAxkBAAEOLudn6AZPWgUpFiuT8qrZazJ1WqzZ6wACQQIAAkWd3QUAAUvgRzYTNxo2BA",
        "CAACAgIAAxkBAAEOLuVn6AZCtUOFx-Nxys3l8V0P0wdYBwACbgUAAvoLtgh7rzojfTrKDjYE",
    ],
    "brag": [
        "CAACAgIAAxkBAAEOLwln6AdWxbjgTaB1NWS8KISU-0PK2AACfgcAAlOx9wMss8IS7z5EBDYE",
        "CAACAgEAAxkBAAEOLwNn6AdN37DATUq1P-j6W7vaeiHMNAAC5AIAAttS9wGxEpTjmDP13jYE",
        "CAACAgIAAxkBAAEOLv9n6Ac9NyrgHB84bulCv-bV3ppI8gACwAEAAzigCgfhO93Ur_AiNgQ",
        "CAACAgEAAxkBAAEOLv1n6Acn6Jn2kkW93FdfSr2w8nw9cwACNQADBE-nFiYkaCi0OBvBNgQ",
        "CAACAgIAAxkBAAEOLbtn5xcReUM7QPZOW0NOazOnAwGX9wAChwkAAgi3GQLxR2JQbSUnAAE2BA",
        "CAACAgQAAxkBAAEOLcFn5xdt4-F8LnxQk0IRwIQNs0j5fQACSwEAAhA1aAABq4cgFB_0m3c2BA",
        "CAACAgIAAxkBAAEN3jZnuDFrQjM9UFkluMKs_JNY9hgVaAACAwEAAladvQoC5dF4h-X6TzYE",
        "CAACAgIAAxkBAAEOLctn5xeeRT8V23rIQwntBAtLGU1R1AACBwEAAladvQq_tyZhIpO5ojYE",
        "CAACAgEAAxkBAAEOLcdn5xeC1zXuu5mI7kXDfvMnOivdbQACJQEAAlBLwgPNNCjjtvh2mzYE",
    ],
    "analysis": [
        "CAACAgIAAxkBAAEOLwln6AdWxbjgTaB1NWS8KISU-0PK2AACfgcAAlOx9wMss8IS7z5EBDYE",
        "CAACAgEAAxkBAAEOLwNn6AdN37DATUq1P-j6W7vaeiHMNAAC5AIAAttS9wGxEpTjmDP13jYE",
        "CAACAgIAAxkBAAEOLv9n6Ac9NyrgHB84bulCv-bV3ppI8gACwAEAAzigCgfhO93Ur_AiNgQ",
    ],
}

# Nomes antigos de interação
INTERACTION_ALIASES = {
    "brag_document": "brag",
    "welcome_new": "onboarding",
    "welcome_back": "onboarding",
}

STICKER_ID_PREFIXES = ("CAACAgI", "CAACAgE", "CAACAgQ")

_last_sent = {}


def normalize_interaction(interaction: str) -> str:
    return INTERACTION_ALIASES.get(interaction, interaction)


def get_random_sticker_for(interaction: str) -> str:
    """Sorteia um sticker da interação sem repetir o último enviado."""
    kind = normalize_interaction(interaction)
    stickers = STICKER_MAP.get(kind)
    if not stickers:
        logger.warning(f"[STICKER] Tipo de interação inválido ou sem stickers: {interaction}")
        return ""

    last = _last_sent.get(kind)
    available = [s for s in stickers if s != last] if last and len(stickers) > 1 else stickers

    sticker_id = random.choice(available)
    _last_sent[kind] = sticker_id
    return sticker_id


def reset_history():
    _last_sent.clear()


async def send_sticker_safely(bot, chat_id: int, interaction: str) -> bool:
    """Envia um sticker por tipo de interação ou file_id; nunca levanta exceção."""
    if interaction and interaction.startswith(STICKER_ID_PREFIXES):
        sticker_id = interaction
    else:
        sticker_id = get_random_sticker_for(interaction)

    if not sticker_id:
        return False

    try:
        await bot.send_sticker(chat_id=chat_id, sticker=sticker_id)
        logger.info(f"[STICKER] Sticker enviado para chat {chat_id}")
        return True
    except TelegramError as e:
        logger.error(f"[STICKER] Erro ao enviar sticker para chat {chat_id}: {e}")
        return False
