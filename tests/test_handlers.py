from unittest.mock import AsyncMock

import numpy as np
import pytest
from telegram.constants import ParseMode
from telegram.error import TelegramError

from bragfy import handlers, nlu
from bragfy.activities import create_activity, get_activities_by_period
from bragfy.handlers import (
    INSTRUCTIONS_PINNED,
    LAST_ACTIVITIES,
    ONBOARDING,
    PENDING_ACTIVITIES,
    callback_handler,
    handle_message,
    new_activity_command,
    start_command,
    status_command,
)
from bragfy.llm import LLMResult
from bragfy.users import create_user, get_user_analyses


class ActivityOnlyModel:
    classes_ = np.array(["activity", "generate_brag_text", "generate_pdf"])

    def predict_proba(self, texts):
        return np.array([[0.98, 0.01, 0.01]])


@pytest.fixture(autouse=True)
def activity_model():
    nlu.set_model(ActivityOnlyModel())
    yield
    nlu.set_model(None)


@pytest.fixture
def user(db, telegram_user):
    return create_user(telegram_user)


def sent_texts(bot):
    return [call.kwargs.get("text") for call in bot.send_message.await_args_list]


def callback_data(markup):
    return [button.callback_data for row in markup.inline_keyboard for button in row]


# --- /start ---

async def test_start_registers_new_user(db, telegram_user, context, bot, message_update):
    context.args = ["instagram"]

    await start_command(message_update(telegram_user, "/start instagram"), context)

    texts = sent_texts(bot)
    assert texts[0] == "⏳ Registrando seu usuário..."
    assert texts[1].startswith("Olá *Ana*, boas vindas ao *Bragfy*")
    assert "Vejo que você veio da nossa *Instagram*" in texts[1]
    assert texts[2].startswith("*COMO USAR*:")
    bot.pin_chat_message.assert_awaited_once()
    bot.send_sticker.assert_awaited_once()
    assert context.user_data[INSTRUCTIONS_PINNED] is True
    assert ONBOARDING not in context.user_data


async def test_start_existing_user(user, telegram_user, context, bot, message_update):
    await start_command(message_update(telegram_user, "/start"), context)

    assert sent_texts(bot) == ["Olá novamente, Ana! Você já está cadastrado no Bragfy."]
    bot.pin_chat_message.assert_not_awaited()


async def test_start_tolerates_pin_failure(db, telegram_user, context, bot, message_update):
    bot.pin_chat_message.side_effect = TelegramError("not enough rights")

    await start_command(message_update(telegram_user, "/start"), context)

    bot.send_sticker.assert_awaited_once()
    assert INSTRUCTIONS_PINNED not in context.user_data
    assert ONBOARDING not in context.user_data


async def test_start_without_user(context, bot, message_update):
    await start_command(message_update(None, "/start"), context)

    assert sent_texts(bot) == ["Não foi possível obter suas informações. Por favor, tente novamente."]


# --- mensagens ---

async def test_message_from_unregistered_user(db, telegram_user, context, message_update):
    update = message_update(telegram_user, "Finalizei o relatório")

    await handle_message(update, context)

    text = update.effective_message.reply_text.await_args.args[0]
    assert text.startswith("Opa! Parece que tivemos um problema ao registrar sua atividade.")


async def test_message_during_onboarding(user, telegram_user, context, message_update):
    context.user_data[ONBOARDING] = True
    update = message_update(telegram_user, "Finalizei o relatório")

    await handle_message(update, context)

    assert "Estamos finalizando seu cadastro" in update.effective_message.reply_text.await_args.args[0]


async def test_message_from_bot_is_ignored(user, telegram_user, context, message_update):
    telegram_user.is_bot = True
    update = message_update(telegram_user, "Finalizei o relatório")

    await handle_message(update, context)

    update.effective_message.reply_text.assert_not_awaited()


async def test_message_asks_for_activity_confirmation(user, telegram_user, context, message_update):
    update = message_update(telegram_user, "Reunião com cliente às 10h", message_id=42)

    await handle_message(update, context)

    call = update.effective_message.reply_text.await_args
    assert call.args[0].startswith('Recebi sua atividade:\n\n"Reunião com cliente"')
    assert call.args[0].endswith("Deseja confirmar, editar ou cancelar?")
    assert "🕒" in call.args[0]
    assert callback_data(call.kwargs["reply_markup"]) == ["confirm:42", "edit:42", "cancel:42"]
    pending = context.user_data[PENDING_ACTIVITIES]["42"]
    assert pending["content"] == "Reunião com cliente"
    assert pending["date"].hour == 10


async def test_message_pdf_request(user, telegram_user, context, message_update):
    update = message_update(telegram_user, "gerar pdf")

    await handle_message(update, context)

    call = update.effective_message.reply_text.await_args
    assert call.args[0] == "Para qual período você deseja gerar o PDF?"
    assert callback_data(call.kwargs["reply_markup"]) == ["pdf:1", "pdf:7", "pdf:30"]


async def test_message_brag_request(user, telegram_user, context, message_update):
    update = message_update(telegram_user, "Gerar Brag")

    await handle_message(update, context)

    call = update.effective_message.reply_text.await_args
    assert call.args[0] == "Vamos gerar seu Brag Document! Escolha o período desejado:"
    assert callback_data(call.kwargs["reply_markup"]) == ["brag:1", "brag:7", "brag:30"]


async def test_message_unexpected_error(user, telegram_user, context, bot, message_update, monkeypatch):
    def explode(text):
        raise RuntimeError("falha inesperada")

    monkeypatch.setattr(handlers, "is_pdf_request", explode)

    await handle_message(message_update(telegram_user, "qualquer coisa"), context)

    text = sent_texts(bot)[-1]
    assert text.startswith("Ops! Ocorreu um erro ao processar sua mensagem")
    assert "Código: " in text


async def test_unanswered_pending_activities_are_capped(user, telegram_user, context, message_update):
    for message_id in range(1, handlers.MAX_PENDING_ACTIVITIES + 6):
        await handle_message(message_update(telegram_user, f"Revisei o PR {message_id}", message_id=message_id), context)

    pending = context.user_data[PENDING_ACTIVITIES]
    assert len(pending) == handlers.MAX_PENDING_ACTIVITIES
    assert "1" not in pending
    assert "5" not in pending
    assert str(handlers.MAX_PENDING_ACTIVITIES + 5) in pending


# --- comandos ---

async def test_status_command(db, telegram_user, context, message_update):
    update = message_update(telegram_user, "/status")

    await status_command(update, context)

    call = update.effective_message.reply_text.await_args
    assert "Banco de dados: conectado" in call.args[0]
    assert call.kwargs["parse_mode"] == ParseMode.MARKDOWN


async def test_new_activity_command(user, telegram_user, context, message_update):
    context.args = ["Apresentei", "a", "demo", "às", "15h"]
    update = message_update(telegram_user, "/na Apresentei a demo às 15h", message_id=50)

    await new_activity_command(update, context)

    assert context.user_data[PENDING_ACTIVITIES]["50"]["content"] == "Apresentei a demo"


async def test_new_activity_command_without_text(user, telegram_user, context, message_update):
    update = message_update(telegram_user, "/na")

    await new_activity_command(update, context)

    assert "/na" in update.effective_message.reply_text.await_args.args[0]
    assert PENDING_ACTIVITIES not in context.user_data


# --- callbacks: registro de atividade ---

async def test_activity_confirmation_flow(user, telegram_user, context, bot, message_update, callback_update):
    await handle_message(message_update(telegram_user, "Finalizei a migração do banco", message_id=42), context)

    confirm = callback_update(telegram_user, "confirm:42")
    await callback_handler(confirm, context)
    call = confirm.callback_query.edit_message_text.await_args
    assert call.args[0] == "Qual é a urgência desta atividade?"
    assert callback_data(call.kwargs["reply_markup"]) == ["urgency:high:42", "urgency:medium:42", "urgency:low:42"]

    urgency = callback_update(telegram_user, "urgency:high:42")
    await callback_handler(urgency, context)
    assert urgency.callback_query.edit_message_text.await_args.args[0] == "Qual é o impacto desta atividade?"
    urgency.callback_query.answer.assert_awaited_once_with(text="Urgência registrada")

    impact = callback_update(telegram_user, "impact:low:42")
    await callback_handler(impact, context)
    text = impact.callback_query.edit_message_text.await_args.args[0]
    assert text.startswith("✅ Atividade registrada com sucesso!")
    assert "Urgência: 🔴 Alta" in text
    assert "Impacto: 🟢 Baixo" in text
    assert '"Finalizei a migração do banco"' in text
    bot.send_sticker.assert_awaited_once()
    assert "42" not in context.user_data[PENDING_ACTIVITIES]

    saved = get_activities_by_period(user.id, 1)
    assert [(a.content, a.urgency, a.impact) for a in saved] == [("Finalizei a migração do banco", "high", "low")]


async def test_confirm_unknown_pending_activity(user, telegram_user, context, callback_update):
    update = callback_update(telegram_user, "confirm:404")

    await callback_handler(update, context)

    assert "Não encontrei essa atividade pendente" in update.callback_query.edit_message_text.await_args.args[0]


async def test_edit_and_cancel(user, telegram_user, context, message_update, callback_update):
    await handle_message(message_update(telegram_user, "Revisei o PR", message_id=1), context)
    await handle_message(message_update(telegram_user, "Escrevi a doc", message_id=2), context)

    edit = callback_update(telegram_user, "edit:1")
    cancel = callback_update(telegram_user, "cancel:2")
    await callback_handler(edit, context)
    await callback_handler(cancel, context)

    assert edit.callback_query.edit_message_text.await_args.args[0] == "✏️ Por favor, envie sua mensagem corrigida."
    assert cancel.callback_query.edit_message_text.await_args.args[0] == "❌ Registro de atividade cancelado."
    assert context.user_data[PENDING_ACTIVITIES] == {}


# --- callbacks: Brag Document ---

async def test_brag_invalid_period(user, telegram_user, context, callback_update):
    update = callback_update(telegram_user, "brag:abc")

    await callback_handler(update, context)

    update.callback_query.answer.assert_awaited_once_with(text="Período inválido")


async def test_brag_without_activities(user, telegram_user, context, callback_update):
    update = callback_update(telegram_user, "brag:7")

    await callback_handler(update, context)

    texts = [call.args[0] for call in update.callback_query.edit_message_text.await_args_list]
    assert texts == [
        "⏳ Gerando seu Brag Document para os últimos 7 dia(s)...",
        "Hmm, não encontrei nenhuma atividade registrada nos últimos 7 dia(s).\n\nQue tal registrar algumas conquistas agora?",
    ]


async def test_brag_for_unregistered_user(db, telegram_user, context, bot, callback_update):
    update = callback_update(telegram_user, "brag:7")

    await callback_handler(update, context)

    assert "/start" in sent_texts(bot)[0]
    update.callback_query.edit_message_text.assert_not_awaited()


async def test_brag_document_is_sent(user, telegram_user, context, bot, callback_update):
    create_activity(user.id, "Entreguei a API", urgency="high", impact="high")
    create_activity(user.id, "Mentoria com estagiários", urgency="low", impact="medium")
    update = callback_update(telegram_user, "brag:7")

    await callback_handler(update, context)

    doc_calls = [c for c in bot.send_message.await_args_list if "*BRAG DOCUMENT*" in c.kwargs["text"]]
    assert len(doc_calls) == 1
    assert doc_calls[0].kwargs["parse_mode"] == ParseMode.MARKDOWN
    offer = bot.send_message.await_args_list[-1].kwargs
    assert callback_data(offer["reply_markup"]) == ["pdf:7", "analyze:7", "analyze:no"]
    assert len(context.user_data[LAST_ACTIVITIES]) == 2
    update.callback_query.answer.assert_awaited_once_with(text="Documento gerado!")


async def test_pdf_is_sent(user, telegram_user, context, bot, callback_update):
    create_activity(user.id, "Entreguei a API")
    create_activity(user.id, "Corrigi o deploy")
    update = callback_update(telegram_user, "pdf:7")

    await callback_handler(update, context)

    assert "⏳ Gerando PDF com todas as 2 atividades..." in sent_texts(bot)
    document = bot.send_document.await_args.kwargs
    assert document["caption"] == "📄 Brag Document - 7 dia(s)"
    assert document["document"].startswith(b"%PDF")
    assert document["filename"].endswith("_7d.pdf")


# --- callbacks: análise de perfil ---

async def test_analysis_declined(user, telegram_user, context, bot, callback_update):
    update = callback_update(telegram_user, "analyze:no")

    await callback_handler(update, context)

    assert sent_texts(bot) == ["Tudo bem! Se quiser analisar depois, é só pedir."]
    update.callback_query.answer.assert_awaited_once_with(text="Análise cancelada")


async def test_analysis_without_document(user, telegram_user, context, bot, callback_update):
    update = callback_update(telegram_user, "analyze:7")

    await callback_handler(update, context)

    assert sent_texts(bot) == [
        "Não foi possível recuperar suas atividades para análise. Por favor, gere novamente seu documento."
    ]
    update.callback_query.answer.assert_awaited_once_with(text="Erro: atividades não encontradas")


async def test_analysis_success(user, telegram_user, context, bot, callback_update, monkeypatch):
    create_activity(user.id, "Entreguei a API")
    context.user_data[LAST_ACTIVITIES] = get_activities_by_period(user.id, 7)
    llm = AsyncMock(return_value=LLMResult(True, "Perfil orientado a entregas"))
    monkeypatch.setattr(handlers, "analyze_profile_with_llm", llm)
    update = callback_update(telegram_user, "analyze:7")

    await callback_handler(update, context)

    texts = sent_texts(bot)
    assert texts[0] == "⏳ Analisando seu perfil profissional com base nas atividades registradas..."
    assert "🧠 *Análise de perfil profissional*\n\nPerfil orientado a entregas" in texts
    assert "Entreguei a API" in llm.await_args.args[0]
    bot.delete_message.assert_awaited_with(chat_id=telegram_user.id, message_id=999)
    bot.send_sticker.assert_awaited_once()
    assert [a.content for a in get_user_analyses(user.id)] == ["Perfil orientado a entregas"]


async def test_analysis_llm_failure(user, telegram_user, context, bot, callback_update, monkeypatch):
    context.user_data[LAST_ACTIVITIES] = [object()]
    monkeypatch.setattr(handlers, "format_activities_for_prompt", lambda activities: "texto")
    monkeypatch.setattr(handlers, "analyze_profile_with_llm", AsyncMock(return_value=LLMResult(False, "falhou (ERRO-LLM-999)")))

    await callback_handler(callback_update(telegram_user, "analyze:7"), context)

    assert sent_texts(bot)[-1] == "falhou (ERRO-LLM-999)"
    bot.delete_message.assert_awaited_once()
    assert get_user_analyses(user.id) == []


# --- callbacks: genéricos ---

async def test_unknown_callback(user, telegram_user, context, callback_update):
    update = callback_update(telegram_user, "foo:bar")

    await callback_handler(update, context)

    update.callback_query.answer.assert_awaited_once_with(text="Ação desconhecida")


async def test_callback_error_is_reported(user, telegram_user, context, bot, callback_update, monkeypatch):
    def explode(user_id, days):
        raise RuntimeError("banco caiu")

    monkeypatch.setattr(handlers, "get_activities_by_period", explode)
    update = callback_update(telegram_user, "brag:7")

    await callback_handler(update, context)

    assert sent_texts(bot)[-1].startswith("Ocorreu um erro ao processar sua solicitação.")
    update.callback_query.answer.assert_awaited_once_with(text="Ocorreu um erro")
