"""
bragfy/bot.py — Ponto de entrada do bot (polling + servidor HTTP)
"""

import asyncio
import logging

from telegram.ext import (
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from bragfy import config, database
from bragfy.handlers import (
    brag_command,
    callback_handler,
    error_handler,
    handle_message,
    help_command,
    new_activity_command,
    pdf_command,
    start_command,
    status_command,
)
from bragfy.server import start_health_server

logger = logging.getLogger(__name__)

NOTIFY_TIMEOUT = 15


def build_application(token: str):
    loop_holder = {}

    async def post_init(application):
        # Loop do polling, usado pela thread HTTP para enviar mensagens
        loop_holder["loop"] = asyncio.get_running_loop()

    application = ApplicationBuilder().token(token).post_init(post_init).build()

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler(["brag", "bragfy"], brag_command))
    application.add_handler(CommandHandler("pdf", pdf_command))
    application.add_handler(CommandHandler("status", status_command))
    application.add_handler(CommandHandler("na", new_activity_command))
    application.add_handler(CallbackQueryHandler(callback_handler))
    application.add_handler(MessageHandler(filters.TEXT & (~filters.COMMAND), handle_message))
    application.add_error_handler(error_handler)

    def notify(chat_id: int, text: str):
        loop = loop_holder.get("loop")
        if loop is None:
            raise RuntimeError("Bot ainda não inicializado")
        future = asyncio.run_coroutine_threadsafe(
            application.bot.send_message(chat_id=chat_id, text=text), loop
        )
        future.result(timeout=NOTIFY_TIMEOUT)

    return application, notify


def main():
    config.configure_logging()

    if not config.TELEGRAM_BOT_TOKEN:
        logger.error("❌ Variável de ambiente TELEGRAM_BOT_TOKEN não encontrada!")
        return

    database.init_db()
    if not database.check_database_connection():
        logger.warning("⚠️ Banco de dados indisponível no momento da inicialização")

    application, notify = build_application(config.TELEGRAM_BOT_TOKEN)
    start_health_server(config.PORT, notify)

    logger.info("🚀 Bragfy está no ar!")
    application.run_polling()


if __name__ == "__main__":
    main()
