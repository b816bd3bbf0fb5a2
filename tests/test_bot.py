import pytest
from sqlalchemy import inspect
from telegram.ext import CallbackQueryHandler, CommandHandler, MessageHandler

from bragfy import database, setup_database
from bragfy.bot import build_application


def test_build_application_registers_handlers():
    application, notify = build_application("123456:TEST-TOKEN")

    handlers = application.handlers[0]
    commands = set()
    for handler in handlers:
        if isinstance(handler, CommandHandler):
            commands |= set(handler.commands)

    assert commands == {"start", "help", "brag", "bragfy", "pdf", "status", "na"}
    assert any(isinstance(handler, CallbackQueryHandler) for handler in handlers)
    assert any(isinstance(handler, MessageHandler) for handler in handlers)
    assert application.error_handlers


def test_notify_before_start_fails():
    _, notify = build_application("123456:TEST-TOKEN")

    with pytest.raises(RuntimeError):
        notify(123, "oi")


def test_setup_database_creates_schema(tmp_path):
    url = f"sqlite:///{tmp_path / 'bragfy.db'}"

    assert setup_database.setup(url) is True

    tables = inspect(database.engine).get_table_names()
    assert {"users", "activities", "user_analyses"} <= set(tables)
