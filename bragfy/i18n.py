"""
Módulo de Internacionalização (i18n) - Bragfy
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "pt"

# Fontes de tráfego aceitas no deep link /start <fonte>
SOURCE_NAMES = {
    "pt": {
        "landing": "página de destino",
        "instagram": "Instagram",
        "facebook": "Facebook",
        "linkedin": "LinkedIn",
        "twitter": "Twitter",
    },
    "en": {
        "landing": "landing page",
        "instagram": "Instagram",
        "facebook": "Facebook",
        "linkedin": "LinkedIn",
        "twitter": "Twitter",
    },
}

TEXTS = {
    "pt": {
        # Onboarding
        "user_info_missing": "Não foi possível obter suas informações. Por favor, tente novamente.",
        "user_info_missing_message": (
            "Não foi possível obter suas informações. Por favor, use o comando /start para começar."
        ),
        "registering": "⏳ Registrando seu usuário...",
        "welcome_new": "Olá *{name}*, boas vindas ao *Bragfy*,  \nseu agente pessoal para gestão de Brag Documents",
        "welcome_source": "Vejo que você veio da nossa *{source}*. Que bom que nos encontrou!",
        "welcome_back": "Olá novamente, {name}! Você já está cadastrado no Bragfy.",
        "instructions": (
            "*COMO USAR*:\n\n"
            "📝 Para registrar uma atividade, *envie uma mensagem* descrevendo o que você fez.\n"
            "🕒 Adicione horários (como \"às 10h\" ou \"14:30\") para indicar quando aconteceu.\n"
            "📋 Para gerar seu Brag Document, envie *gerar brag* ou use /brag.\n"
            "📄 Para receber o documento em PDF, envie *gerar pdf* ou use /pdf."
        ),
        "start_error": "Ocorreu um erro ao processar seu comando. Por favor, tente novamente mais tarde.",
        "onboarding_wait": "⏳ Estamos finalizando seu cadastro, aguarde só um instante...",
        "not_registered": (
            "Opa! Parece que tivemos um problema ao registrar sua atividade.\n"
            "Por favor, envie o comando /start novamente para que tudo funcione direitinho 🙏"
        ),
        "not_registered_document": (
            "Opa! Parece que tivemos um problema com seu cadastro.\n"
            "Por favor, envie o comando /start novamente para que possamos gerar seu documento 🙏"
        ),
        "user_not_found": "Erro: Usuário não encontrado. Por favor, use o comando /start para reiniciar a conversa.",
        "toast_not_registered": "Erro: cadastro não encontrado",

        # Registro de atividade
        "activity_received": "Recebi sua atividade:\n\n\"{content}\"{time_note}\n\nDeseja confirmar, editar ou cancelar?",
        "activity_time_note": "\n\n🕒 Horário: {time}",
        "btn_confirm": "✅ Confirmar",
        "btn_edit": "✏️ Editar",
        "btn_cancel": "❌ Cancelar",
        "ask_urgency": "Qual é a urgência desta atividade?",
        "ask_impact": "Qual é o impacto desta atividade?",
        "toast_urgency_saved": "Urgência registrada",
        "activity_saved": (
            "✅ Atividade registrada com sucesso!\n\n"
            "Data: {date}\nUrgência: {urgency}\nImpacto: {impact}\n\n"
            "Conteúdo:\n\"{content}\""
        ),
        "toast_activity_saved": "Atividade registrada!",
        "activity_error": "Erro ao registrar sua atividade. Por favor, tente novamente.",
        "toast_activity_error": "Erro ao registrar",
        "pending_missing": "Não encontrei essa atividade pendente. Por favor, envie a mensagem novamente.",
        "edit_prompt": "✏️ Por favor, envie sua mensagem corrigida.",
        "cancelled": "❌ Registro de atividade cancelado.",
        "na_usage": "Use: `/na descrição da atividade`",

        # Brag Document
        "brag_choose_period": "Vamos gerar seu Brag Document! Escolha o período desejado:",
        "pdf_choose_period": "Para qual período você deseja gerar o PDF?",
        "btn_today": "🟢 Atividades de hoje",
        "btn_week": "🔵 Últimos 7 dias",
        "btn_month": "🟣 Últimos 30 dias",
        "toast_invalid_period": "Período inválido",
        "brag_generating": "⏳ Gerando seu Brag Document para os últimos {days} dia(s)...",
        "no_activities": (
            "Hmm, não encontrei nenhuma atividade registrada nos últimos {days} dia(s).\n\n"
            "Que tal registrar algumas conquistas agora?"
        ),
        "toast_no_activities": "Nenhuma atividade encontrada",
        "toast_document_generated": "Documento gerado!",
        "brag_error": "Desculpe, ocorreu um erro ao gerar seu Brag Document. Por favor, tente novamente mais tarde.",
        "toast_document_error": "Erro ao gerar documento",
        "brag_next_steps": "Quer receber esse documento em PDF ou uma análise do seu perfil profissional?",
        "btn_pdf": "📄 Gerar PDF",
        "btn_analyze": "🧠 Analisar perfil",
        "btn_no_thanks": "Agora não",

        # PDF
        "pdf_generating": "⏳ Gerando PDF com todas as {count} atividades...",
        "pdf_caption": "📄 Brag Document - {days} dia(s)",
        "pdf_error": "❌ Não foi possível gerar o PDF. Tente novamente mais tarde.",
        "toast_pdf_generated": "PDF gerado!",

        # Análise de perfil
        "analysis_declined": "Tudo bem! Se quiser analisar depois, é só pedir.",
        "toast_analysis_declined": "Análise cancelada",
        "analysis_missing": (
            "Não foi possível recuperar suas atividades para análise. Por favor, gere novamente seu documento."
        ),
        "toast_analysis_missing": "Erro: atividades não encontradas",
        "analysis_loading": "⏳ Analisando seu perfil profissional com base nas atividades registradas...",
        "analysis_result": "🧠 *Análise de perfil profissional*\n\n{result}",
        "toast_analysis_done": "Análise concluída!",

        # Genéricos
        "toast_unknown_action": "Ação desconhecida",
        "toast_error": "Ocorreu um erro",
        "callback_error": (
            "Ocorreu um erro ao processar sua solicitação. Por favor, tente novamente ou use /start para reiniciar."
        ),
        "status": "🖥️ *Status do Bragfy*\n✅ Online\n🗄️ Banco de dados: {database}\n⏰ BRT: `{now}`",
        "database_connected": "conectado",
        "database_disconnected": "desconectado",
        "link_ready": "Seu Brag Document está pronto! ✨\n\n🔗 {url}",
        "empty_message": "Não foi possível enviar a mensagem (vazia)",
    },

    "en": {
        "user_info_missing": "We couldn't read your information. Please try again.",
        "user_info_missing_message": "We couldn't read your information. Please use the /start command to begin.",
        "registering": "⏳ Registering your user...",
        "welcome_new": "Hello *{name}*, welcome to *Bragfy*,  \nyour personal agent for Brag Documents",
        "welcome_source": "I see you came from our *{source}*. Glad you found us!",
        "welcome_back": "Hello again, {name}! You are already registered on Bragfy.",
        "instructions": (
            "*HOW TO USE*:\n\n"
            "📝 To log an activity, *send a message* describing what you did.\n"
            "🕒 Add times (like \"às 10h\" or \"14:30\") to say when it happened.\n"
            "📋 To build your Brag Document, send *gerar brag* or use /brag.\n"
            "📄 To get the document as a PDF, send *gerar pdf* or use /pdf."
        ),
        "start_error": "Something went wrong while processing your command. Please try again later.",
        "onboarding_wait": "⏳ We are finishing your registration, just a moment...",
        "not_registered": (
            "Oops! Looks like we had a problem logging your activity.\n"
            "Please send /start again so everything works properly 🙏"
        ),
        "not_registered_document": (
            "Oops! Looks like we had a problem with your registration.\n"
            "Please send /start again so we can build your document 🙏"
        ),
        "user_not_found": "Error: user not found. Please use /start to restart the conversation.",
        "toast_not_registered": "Error: registration not found",

        "activity_received": "Got your activity:\n\n\"{content}\"{time_note}\n\nConfirm, edit or cancel?",
        "activity_time_note": "\n\n🕒 Time: {time}",
        "btn_confirm": "✅ Confirm",
        "btn_edit": "✏️ Edit",
        "btn_cancel": "❌ Cancel",
        "ask_urgency": "How urgent is this activity?",
        "ask_impact": "What is the impact of this activity?",
        "toast_urgency_saved": "Urgency saved",
        "activity_saved": (
            "✅ Activity logged successfully!\n\n"
            "Date: {date}\nUrgency: {urgency}\nImpact: {impact}\n\n"
            "Content:\n\"{content}\""
        ),
        "toast_activity_saved": "Activity logged!",
        "activity_error": "Error logging your activity. Please try again.",
        "toast_activity_error": "Error logging",
        "pending_missing": "I couldn't find this pending activity. Please send the message again.",
        "edit_prompt": "✏️ Please send the corrected message.",
        "cancelled": "❌ Activity logging cancelled.",
        "na_usage": "Use: `/na activity description`",

        "brag_choose_period": "Let's build your Brag Document! Choose the period:",
        "pdf_choose_period": "Which period should the PDF cover?",
        "btn_today": "🟢 Today's activities",
        "btn_week": "🔵 Last 7 days",
        "btn_month": "🟣 Last 30 days",
        "toast_invalid_period": "Invalid period",
        "brag_generating": "⏳ Building your Brag Document for the last {days} day(s)...",
        "no_activities": (
            "Hmm, I couldn't find any activity in the last {days} day(s).\n\n"
            "How about logging some achievements now?"
        ),
        "toast_no_activities": "No activities found",
        "toast_document_generated": "Document ready!",
        "brag_error": "Sorry, something went wrong while building your Brag Document. Please try again later.",
        "toast_document_error": "Error building document",
        "brag_next_steps": "Would you like this document as a PDF or an analysis of your professional profile?",
        "btn_pdf": "📄 Build PDF",
        "btn_analyze": "🧠 Analyze profile",
        "btn_no_thanks": "Not now",

        "pdf_generating": "⏳ Building a PDF with all {count} activities...",
        "pdf_caption": "📄 Brag Document - {days} day(s)",
        "pdf_error": "❌ Could not build the PDF. Please try again later.",
        "toast_pdf_generated": "PDF ready!",

        "analysis_declined": "All right! If you want an analysis later, just ask.",
        "toast_analysis_declined": "Analysis cancelled",
        "analysis_missing": "Could not retrieve your activities for analysis. Please build your document again.",
        "toast_analysis_missing": "Error: activities not found",
        "analysis_loading": "⏳ Analyzing your professional profile based on your logged activities...",
        "analysis_result": "🧠 *Professional profile analysis*\n\n{result}",
        "toast_analysis_done": "Analysis complete!",

        "toast_unknown_action": "Unknown action",
        "toast_error": "An error occurred",
        "callback_error": "Something went wrong with your request. Please try again or use /start to restart.",
        "status": "🖥️ *Bragfy Status*\n✅ Online\n🗄️ Database: {database}\n⏰ BRT: `{now}`",
        "database_connected": "connected",
        "database_disconnected": "disconnected",
        "link_ready": "Your Brag Document is ready! ✨\n\n🔗 {url}",
        "empty_message": "Could not send the message (empty)",
    },
}


def resolve_language(telegram_user) -> str:
    """Idioma a partir do language_code do Telegram (padrão: português)."""
    code = (getattr(telegram_user, "language_code", None) or "").lower()
    if code.startswith("en"):
        return "en"
    return DEFAULT_LANGUAGE


def get_text(lang: str, key: str, **kwargs) -> str:
    """
    Retorna a mensagem traduzida com suporte a placeholders e fallback seguro.
    Uso: get_text("pt", "brag_generating", days=7)
    """
    language_pack = TEXTS.get(lang, TEXTS[DEFAULT_LANGUAGE])
    message = language_pack.get(key) or TEXTS[DEFAULT_LANGUAGE].get(key, f"⚠️ Missing translation for: {key}")
    try:
        return message.format(**kwargs) if kwargs else message
    except KeyError as e:
        logger.warning(f"Missing placeholder {e} for key '{key}' (lang='{lang}')")
        return f"{message} (Error: missing placeholder {e})"


def source_name(lang: str, source: str):
    return SOURCE_NAMES.get(lang, SOURCE_NAMES[DEFAULT_LANGUAGE]).get((source or "").lower())
