"""
Fixtures compartilhadas dos testes do Bragfy.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from bragfy import database, stickers


@pytest.fixture
def db():
    """Banco SQLite em memória, recriado a cada teste."""
    engine = database.configure("sqlite://")
    database.init_db()
    yield engine
    database.Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_sticker_history():
    stickers.reset_history()
    yield
    stickers.reset_history()


@pytest.fixture
def telegram_user():
    return SimpleNamespace(
        id=123456,
        first_name="Ana",
        last_name="Souza",
        username="ana_souza",
        language_code="pt-br",
        is_bot=False,
    )


@pytest.fixture
def bot():
    bot = AsyncMock()
    bot.send_message.return_value = SimpleNamespace(message_id=999)
    return bot


@pytest.fixture
def context(bot):
    context = MagicMock()
    context.bot = bot
    context.args = []
    context.user_data = {}
    return context


def make_message_update(telegram_user, text="", chat_id=123456, message_id=42):
    message = MagicMock()
    message.text = text
    message.message_id = message_id
    message.reply_text = AsyncMock()

    update = MagicMock()
    update.effective_user = telegram_user
    update.effective_chat = SimpleNamespace(id=chat_id)
    update.effective_message = message
    update.message = message
    return update


def make_callback_update(telegram_user, data, chat_id=123456, message_id=77):
    query = MagicMock()
    query.data = data
    query.from_user = telegram_user
    query.message = SimpleNamespace(chat_id=chat_id, message_id=message_id)
    query.answer = AsyncMock()
    query.edit_message_text = AsyncMock()

    update = MagicMock()
    update.callback_query = query
    update.effective_user = telegram_user
    update.effective_chat = SimpleNamespace(id=chat_id)
    return update


@pytest.fixture
def message_update():
    return make_message_update


@pytest.fixture
def callback_update():
    return make_callback_update
