import logging

from sqlalchemy.exc import SQLAlchemyError
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from bragfy import config
from bragfy.activities import (
    VALID_LEVELS,
    ActivityError,
    create_activity,
    get_activities_by_period,
    impact_emoji_label,
    urgency_emoji_label,
)
from bragfy.brag import build_brag_text
from bragfy.database import check_database_connection
from bragfy.errors import ERROR_MESSAGES, generate_trace_id, handle_user_error, log_error
from bragfy.i18n import get_text, resolve_language, source_name
from bragfy.llm import analyze_profile_with_llm, format_activities_for_prompt
from bragfy.markdown import send_safe_markdown
from bragfy.nlu import is_brag_text_request, is_pdf_request
from bragfy.pdf import BragDocumentData, generate_brag_document_pdf
from bragfy.stickers import send_sticker_safely
from bragfy.timeutils import extract_time, format_timestamp, now_local
from bragfy.users import (
    create_user,
    generate_user_hash,
    get_user_by_telegram_id,
    save_user_analysis,
    user_exists,
)

logger = logging.getLogger(__name__)

# Chaves em context.user_data
PENDING_ACTIVITIES = "pending_activities"
LAST_ACTIVITIES = "last_activities"
ONBOARDING = "onboarding_in_progress"
INSTRUCTIONS_PINNED = "instructions_pinned"

MAX_PERIOD_DAYS = 365
# Pendências não respondidas além deste limite são descartadas (as mais antigas primeiro)
MAX_PENDING_ACTIVITIES = 20


# --- TECLADOS ---

def period_keyboard(prefix: str, lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(get_text(lang, "btn_today"), callback_data=f"{prefix}:1")],
        [InlineKeyboardButton(get_text(lang, "btn_week"), callback_data=f"{prefix}:7")],
        [InlineKeyboardButton(get_text(lang, "btn_month"), callback_data=f"{prefix}:30")],
    ])


def level_keyboard(kind: str, key: str, label) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(label(level), callback_data=f"{kind}:{level}:{key}")
        for level in VALID_LEVELS
    ]])


def confirmation_keyboard(key: str, lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(get_text(lang, "btn_confirm"), callback_data=f"confirm:{key}"),
        InlineKeyboardButton(get_text(lang, "btn_edit"), callback_data=f"edit:{key}"),
        InlineKeyboardButton(get_text(lang, "btn_cancel"), callback_data=f"cancel:{key}"),
    ]])


def next_steps_keyboard(days: int, lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(get_text(lang, "btn_pdf"), callback_data=f"pdf:{days}"),
            InlineKeyboardButton(get_text(lang, "btn_analyze"), callback_data=f"analyze:{days}"),
        ],
        [InlineKeyboardButton(get_text(lang, "btn_no_thanks"), callback_data="analyze:no")],
    ])


# --- AUXILIARES ---

def parse_period(value: str):
    """Número de dias do callback, ou None se inválido."""
    try:
        days = int(value)
    except (TypeError, ValueError):
        return None
    return days if 1 <= days <= MAX_PERIOD_DAYS else None


async def _delete_quietly(bot, chat_id: int, message_id: int):
    try:
        await bot.delete_message(chat_id=chat_id, message_id=message_id)
    except TelegramError as e:
        logger.warning(f"Não foi possível apagar a mensagem {message_id}: {e}")


async def _send_instructions(context: ContextTypes.DEFAULT_TYPE, chat_id: int, lang: str):
    """Envia o guia de uso e fixa a mensagem uma única vez por usuário."""
    message = await context.bot.send_message(
        chat_id=chat_id, text=get_text(lang, "instructions"), parse_mode=ParseMode.MARKDOWN
    )
    if context.user_data.get(INSTRUCTIONS_PINNED):
        return
    try:
        await context.bot.pin_chat_message(chat_id=chat_id, message_id=message.message_id, disable_notification=True)
        context.user_data[INSTRUCTIONS_PINNED] = True
    except TelegramError as e:
        logger.warning(f"Não foi possível fixar as instruções no chat {chat_id}: {e}")


async def _registered_user_for_callback(query, context, lang: str):
    """Usuário do banco para um callback; avisa e retorna None se não houver cadastro."""
    chat_id = query.message.chat_id
    telegram_id = query.from_user.id

    if not user_exists(telegram_id):
        logger.warning(f"Usuário {telegram_id} não existe no banco mas acionou um callback")
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "not_registered_document"))
        await query.answer(text=get_text(lang, "toast_not_registered"))
        return None

    user = get_user_by_telegram_id(telegram_id)
    if user is None:
        logger.warning(f"Usuário {telegram_id} existe segundo user_exists() mas não foi encontrado")
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "user_not_found"))
        await query.answer(text=get_text(lang, "toast_not_registered"))
    return user


async def _ask_activity_confirmation(message, context: ContextTypes.DEFAULT_TYPE, text: str, lang: str):
    extraction = extract_time(text)
    content = extraction.clean_message or text.strip()
    key = str(message.message_id)

    pending = context.user_data.setdefault(PENDING_ACTIVITIES, {})
    pending[key] = {"content": content, "date": extraction.extracted_time, "urgency": None}
    while len(pending) > MAX_PENDING_ACTIVITIES:
        pending.pop(next(iter(pending)))

    time_note = ""
    if extraction.extracted_time is not None:
        time_note = get_text(lang, "activity_time_note", time=format_timestamp(extraction.extracted_time))

    await message.reply_text(
        get_text(lang, "activity_received", content=content, time_note=time_note),
        reply_markup=confirmation_keyboard(key, lang),
    )


# --- HANDLERS DE COMANDO ---

async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    /start [fonte]: cadastra o usuário e apresenta o bot.

    A fonte (landing, instagram, ...) vem do deep link t.me/<bot>?start=<fonte>.
    """
    chat_id = update.effective_chat.id
    telegram_user = update.effective_user
    lang = resolve_language(telegram_user)
    source = context.args[0] if context.args else None

    if telegram_user is None:
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "user_info_missing"))
        return

    if source:
        logger.info(f"Usuário {telegram_user.id} acessou através da fonte: {source}")

    try:
        if user_exists(telegram_user.id):
            await context.bot.send_message(
                chat_id=chat_id, text=get_text(lang, "welcome_back", name=telegram_user.first_name)
            )
            return

        context.user_data[ONBOARDING] = True
        loading = await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "registering"))
        create_user(telegram_user)
        await _delete_quietly(context.bot, chat_id, loading.message_id)

        welcome = get_text(lang, "welcome_new", name=telegram_user.first_name)
        known_source = source_name(lang, source)
        if known_source:
            welcome += "\n\n" + get_text(lang, "welcome_source", source=known_source)
        await context.bot.send_message(chat_id=chat_id, text=welcome, parse_mode=ParseMode.MARKDOWN)

        await _send_instructions(context, chat_id, lang)
        await send_sticker_safely(context.bot, chat_id, "onboarding")
        logger.info(f"✅ Usuário {telegram_user.id} cadastrado com sucesso")
    except Exception as e:
        logger.error(f"Erro ao processar comando /start: {e}")
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "start_error"))
    finally:
        context.user_data.pop(ONBOARDING, None)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Exibe o guia de uso."""
    lang = resolve_language(update.effective_user)
    await update.effective_message.reply_text(get_text(lang, "instructions"), parse_mode=ParseMode.MARKDOWN)


async def brag_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    lang = resolve_language(update.effective_user)
    await update.effective_message.reply_text(
        get_text(lang, "brag_choose_period"), reply_markup=period_keyboard("brag", lang)
    )


async def pdf_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    lang = resolve_language(update.effective_user)
    await update.effective_message.reply_text(
        get_text(lang, "pdf_choose_period"), reply_markup=period_keyboard("pdf", lang)
    )


async def status_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Mostra o status do servidor, do banco e a hora de Brasília."""
    lang = resolve_language(update.effective_user)
    database = "database_connected" if check_database_connection() else "database_disconnected"
    await update.effective_message.reply_text(
        get_text(lang, "status", database=get_text(lang, database), now=now_local().strftime("%d/%m/%Y %H:%M:%S")),
        parse_mode=ParseMode.MARKDOWN,
    )


async def new_activity_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/na <texto>: atalho para registrar uma atividade."""
    message = update.effective_message
    telegram_user = update.effective_user
    lang = resolve_language(telegram_user)
    text = " ".join(context.args or []).strip()

    if not text:
        await message.reply_text(get_text(lang, "na_usage"), parse_mode=ParseMode.MARKDOWN)
        return

    if telegram_user is None or get_user_by_telegram_id(telegram_user.id) is None:
        await message.reply_text(get_text(lang, "not_registered"))
        return

    await _ask_activity_confirmation(message, context, text, lang)


# --- MENSAGENS DE TEXTO ---

async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """
    Texto livre: pedido de Brag Document/PDF (classificador de intenção) ou
    registro de uma nova atividade.
    """
    message = update.effective_message
    chat_id = update.effective_chat.id
    telegram_user = update.effective_user
    lang = resolve_language(telegram_user)

    if telegram_user is None:
        logger.warning(f"Mensagem recebida sem dados do usuário no chat {chat_id}")
        await message.reply_text(get_text(lang, "user_info_missing_message"))
        return

    if telegram_user.is_bot:
        return

    if context.user_data.get(ONBOARDING):
        await message.reply_text(get_text(lang, "onboarding_wait"))
        return

    text = message.text or ""
    try:
        if not user_exists(telegram_user.id):
            logger.warning(f"Usuário {telegram_user.id} tentou enviar mensagem mas não está cadastrado")
            await message.reply_text(get_text(lang, "not_registered"))
            return

        if get_user_by_telegram_id(telegram_user.id) is None:
            logger.warning(f"Usuário {telegram_user.id} existe segundo user_exists() mas não foi encontrado")
            await message.reply_text(get_text(lang, "not_registered"))
            return

        if is_pdf_request(text):
            logger.info(f"Usuário {telegram_user.id} solicitou PDF via texto")
            await message.reply_text(get_text(lang, "pdf_choose_period"), reply_markup=period_keyboard("pdf", lang))
            return

        if is_brag_text_request(text):
            logger.info(f"Usuário {telegram_user.id} solicitou geração de Brag Document")
            await message.reply_text(get_text(lang, "brag_choose_period"), reply_markup=period_keyboard("brag", lang))
            return

        await _ask_activity_confirmation(message, context, text, lang)
    except Exception as e:
        await handle_user_error(
            context.bot,
            chat_id,
            e,
            "handle_message",
            user_id=telegram_user.id,
            message_id=message.message_id,
            message_text=text,
            state={"onboarding": bool(context.user_data.get(ONBOARDING))},
            base_message=ERROR_MESSAGES["MESSAGE_PROCESSING"],
        )


# --- CALLBACKS DE BOTÕES ---

def _pending(context: ContextTypes.DEFAULT_TYPE, key: str):
    return context.user_data.get(PENDING_ACTIVITIES, {}).get(key)


async def _on_confirm(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    if _pending(context, arg) is None:
        await query.edit_message_text(get_text(lang, "pending_missing"))
        await query.answer()
        return

    await query.edit_message_text(
        get_text(lang, "ask_urgency"), reply_markup=level_keyboard("urgency", arg, urgency_emoji_label)
    )
    await query.answer()


async def _on_urgency(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    level, _, key = arg.partition(":")
    pending = _pending(context, key)
    if level not in VALID_LEVELS or pending is None:
        await query.answer(text=get_text(lang, "toast_unknown_action"))
        return

    pending["urgency"] = level
    await query.edit_message_text(
        get_text(lang, "ask_impact"), reply_markup=level_keyboard("impact", key, impact_emoji_label)
    )
    await query.answer(text=get_text(lang, "toast_urgency_saved"))


async def _on_impact(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    chat_id = query.message.chat_id
    level, _, key = arg.partition(":")
    pending = _pending(context, key)
    if level not in VALID_LEVELS or pending is None:
        await query.answer(text=get_text(lang, "toast_unknown_action"))
        return

    user = await _registered_user_for_callback(query, context, lang)
    if user is None:
        return

    urgency = pending.get("urgency") or "medium"
    try:
        activity = create_activity(user.id, pending["content"], urgency=urgency, impact=level, date=pending["date"])
    except ActivityError as e:
        logger.error(f"Erro ao criar atividade para o usuário {user.id}: {e}")
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "activity_error"))
        await query.answer(text=get_text(lang, "toast_activity_error"))
        return

    context.user_data[PENDING_ACTIVITIES].pop(key, None)
    await query.edit_message_text(
        get_text(
            lang,
            "activity_saved",
            date=format_timestamp(activity.date),
            urgency=urgency_emoji_label(activity.urgency),
            impact=impact_emoji_label(activity.impact),
            content=activity.content,
        )
    )
    logger.info(f"Atividade {activity.id} criada para o usuário {user.id}")
    await query.answer(text=get_text(lang, "toast_activity_saved"))
    await send_sticker_safely(context.bot, chat_id, "new_activity")


async def _on_edit(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    context.user_data.get(PENDING_ACTIVITIES, {}).pop(arg, None)
    await query.edit_message_text(get_text(lang, "edit_prompt"))
    logger.info(f"Usuário {query.from_user.id} solicitou edição")
    await query.answer()


async def _on_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    context.user_data.get(PENDING_ACTIVITIES, {}).pop(arg, None)
    await query.edit_message_text(get_text(lang, "cancelled"))
    logger.info(f"Usuário {query.from_user.id} cancelou atividade")
    await query.answer()


async def _on_brag(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    chat_id = query.message.chat_id
    days = parse_period(arg)
    if days is None:
        await query.answer(text=get_text(lang, "toast_invalid_period"))
        return

    user = await _registered_user_for_callback(query, context, lang)
    if user is None:
        return

    await query.edit_message_text(get_text(lang, "brag_generating", days=days))
    try:
        activities = get_activities_by_period(user.id, days)
    except ActivityError:
        await query.edit_message_text(get_text(lang, "brag_error"))
        await query.answer(text=get_text(lang, "toast_document_error"))
        return

    if not activities:
        await query.edit_message_text(get_text(lang, "no_activities", days=days))
        await query.answer(text=get_text(lang, "toast_no_activities"))
        return

    context.user_data[LAST_ACTIVITIES] = activities
    await send_safe_markdown(context.bot, chat_id, build_brag_text(user, activities, days))
    await _delete_quietly(context.bot, chat_id, query.message.message_id)
    await context.bot.send_message(
        chat_id=chat_id, text=get_text(lang, "brag_next_steps"), reply_markup=next_steps_keyboard(days, lang)
    )
    logger.info(f"Brag Document com {len(activities)} atividades gerado para o usuário {user.id}")
    await query.answer(text=get_text(lang, "toast_document_generated"))
    await send_sticker_safely(context.bot, chat_id, "brag")


async def _on_pdf(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    chat_id = query.message.chat_id
    days = parse_period(arg)
    if days is None:
        await query.answer(text=get_text(lang, "toast_invalid_period"))
        return

    user = await _registered_user_for_callback(query, context, lang)
    if user is None:
        return

    try:
        activities = get_activities_by_period(user.id, days)
    except ActivityError:
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "pdf_error"))
        await query.answer(text=get_text(lang, "toast_document_error"))
        return

    if not activities:
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "no_activities", days=days))
        await query.answer(text=get_text(lang, "toast_no_activities"))
        return

    loading = await context.bot.send_message(
        chat_id=chat_id, text=get_text(lang, "pdf_generating", count=len(activities))
    )
    result = generate_brag_document_pdf(BragDocumentData(user=user, activities=activities, days=days))
    await _delete_quietly(context.bot, chat_id, loading.message_id)

    if not result.success:
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "pdf_error"))
        await query.answer(text=get_text(lang, "toast_document_error"))
        return

    user_hash = generate_user_hash(user.telegram_id, user.username, config.HASH_SALT)
    await context.bot.send_document(
        chat_id=chat_id,
        document=result.buffer,
        filename=f"brag_document_{user_hash[:12]}_{days}d.pdf",
        caption=get_text(lang, "pdf_caption", days=days),
    )
    context.user_data[LAST_ACTIVITIES] = activities
    await query.answer(text=get_text(lang, "toast_pdf_generated"))
    await send_sticker_safely(context.bot, chat_id, "brag")


async def _on_analyze(update: Update, context: ContextTypes.DEFAULT_TYPE, arg: str, lang: str):
    query = update.callback_query
    chat_id = query.message.chat_id

    if arg == "no":
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "analysis_declined"))
        await query.answer(text=get_text(lang, "toast_analysis_declined"))
        return

    activities = context.user_data.get(LAST_ACTIVITIES)
    if not activities:
        await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "analysis_missing"))
        await query.answer(text=get_text(lang, "toast_analysis_missing"))
        return

    loading = await context.bot.send_message(chat_id=chat_id, text=get_text(lang, "analysis_loading"))
    try:
        result = await analyze_profile_with_llm(format_activities_for_prompt(activities))
        if not result.success:
            await context.bot.send_message(chat_id=chat_id, text=result.result)
            await query.answer(text=get_text(lang, "toast_error"))
            return

        user = get_user_by_telegram_id(query.from_user.id)
        if user is not None:
            try:
                save_user_analysis(user.id, user.telegram_id, result.result)
            except SQLAlchemyError as e:
                logger.error(f"Erro ao salvar análise do usuário {user.id}: {e}")

        await send_safe_markdown(context.bot, chat_id, get_text(lang, "analysis_result", result=result.result))
        await send_sticker_safely(context.bot, chat_id, "analysis")
        await query.answer(text=get_text(lang, "toast_analysis_done"))
    finally:
        await _delete_quietly(context.bot, chat_id, loading.message_id)


CALLBACK_ROUTES = {
    "confirm": _on_confirm,
    "urgency": _on_urgency,
    "impact": _on_impact,
    "edit": _on_edit,
    "cancel": _on_cancel,
    "brag": _on_brag,
    "pdf": _on_pdf,
    "analyze": _on_analyze,
}


async def callback_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Roteia o callback_data '<ação>:<argumento>' para o handler da ação."""
    query = update.callback_query
    data = query.data or ""
    lang = resolve_language(query.from_user)
    action, _, arg = data.partition(":")

    route = CALLBACK_ROUTES.get(action)
    if route is None:
        logger.warning(f"Callback desconhecido recebido: {data}")
        await query.answer(text=get_text(lang, "toast_unknown_action"))
        return

    try:
        await route(update, context, arg, lang)
    except Exception as e:
        trace_id = generate_trace_id()
        log_error(
            trace_id,
            e,
            user_id=query.from_user.id,
            chat_id=query.message.chat_id if query.message else None,
            context="callback_handler",
            callback_data=data,
        )
        try:
            if query.message:
                await context.bot.send_message(chat_id=query.message.chat_id, text=get_text(lang, "callback_error"))
            await query.answer(text=get_text(lang, "toast_error"))
        except TelegramError as send_error:
            logger.error(f"[{trace_id}] Erro ao enviar resposta de erro: {send_error}")


# --- ERROS NÃO TRATADOS ---

async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    trace_id = generate_trace_id()
    user_id = chat_id = None
    if isinstance(update, Update):
        user_id = update.effective_user.id if update.effective_user else None
        chat_id = update.effective_chat.id if update.effective_chat else None
    log_error(trace_id, context.error, user_id=user_id, chat_id=chat_id, context="error_handler")
