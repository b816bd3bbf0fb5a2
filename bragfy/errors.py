"""
bragfy/errors.py — Mensagens de erro padronizadas e rastreamento por código
"""

import json
import logging
import traceback
import uuid
from datetime import datetime, timezone

from telegram.error import TelegramError

logger = logging.getLogger(__name__)

ERROR_MESSAGES = {
    "GENERIC": "Ops! Ocorreu um erro ao processar sua solicitação",
    "UNRECOVERABLE": "Ocorreu um erro crítico. Por favor, tente novamente usando o comando /start",
    "MESSAGE_PROCESSING": "Ops! Ocorreu um erro ao processar sua mensagem",
    "USER_NOT_FOUND": "Não foi possível recuperar seus dados",
    "DATABASE": "Erro ao acessar o banco de dados",
    "CALLBACK": "Erro ao processar sua solicitação",
    "ACTIVITY_CREATION": "Erro ao registrar sua atividade",
}


def generate_trace_id() -> str:
    return uuid.uuid4().hex[:8]


def log_error(
    trace_id: str,
    error: BaseException,
    user_id=None,
    chat_id=None,
    message_id=None,
    context: str = None,
    message_text: str = None,
    callback_data: str = None,
    state: dict = None,
):
    """Registra o erro com todo o contexto disponível para depuração."""
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__)) if error else "Indisponível"
    logger.error(
        f"\n=================== ERRO [{trace_id}] ===================\n"
        f"Timestamp: {datetime.now(timezone.utc).isoformat()}\n"
        f"Usuário: {user_id or 'N/A'}\n"
        f"Chat: {chat_id or 'N/A'}\n"
        f"Mensagem ID: {message_id or 'N/A'}\n"
        f"Contexto: {context or 'N/A'}\n"
        f"Texto da mensagem: {message_text or 'N/A'}\n"
        f"Callback data: {callback_data or 'N/A'}\n"
        f"Estado: {json.dumps(state or {}, indent=2, default=str, ensure_ascii=False)}\n\n"
        f"Erro: {error}\n"
        f"Stack: {stack}"
        f"============================================================="
    )


def create_user_error_message(trace_id: str, base_message: str = None) -> str:
    base = base_message or ERROR_MESSAGES["GENERIC"]
    return (
        f"{base}. Por favor, tente novamente ou use o comando /start para reiniciar a conversa.\n\n"
        f"Código: {trace_id}"
    )


async def handle_user_error(
    bot,
    chat_id: int,
    error: BaseException,
    context: str,
    user_id=None,
    message_id=None,
    message_text: str = None,
    callback_data: str = None,
    state: dict = None,
    base_message: str = None,
) -> str:
    """
    Registra o erro e envia ao usuário uma mensagem amigável com o código
    de rastreamento. Retorna o código gerado.
    """
    trace_id = generate_trace_id()
    log_error(
        trace_id,
        error,
        user_id=user_id,
        chat_id=chat_id,
        message_id=message_id,
        context=context,
        message_text=message_text,
        callback_data=callback_data,
        state=state,
    )

    try:
        await bot.send_message(chat_id=chat_id, text=create_user_error_message(trace_id, base_message))
    except TelegramError as send_error:
        logger.error(f"[{trace_id}] Erro ao enviar mensagem de erro: {send_error}")

    return trace_id
