"""
bragfy/brag.py — Brag Document em texto (Markdown do Telegram)
"""

from datetime import datetime

from bragfy.activities import impact_emoji_label, period_start, urgency_emoji_label
from bragfy.markdown import ACTIVITIES_HEADER, ACTIVITY_DIVIDER, BRAG_TITLE, escape_markdown
from bragfy.timeutils import format_report_period, format_timestamp, now_local

DEFAULT_ACTIVITY_LIMIT = 10


def _user_header(user) -> str:
    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    lines = [f"👤 *{escape_markdown(name)}*"]
    if user.username:
        lines.append(f"📛 @{escape_markdown(user.username)}")
    lines.append(f"🆔 ID: {user.telegram_id}")
    return "\n".join(lines)


def _activity_block(activity) -> str:
    return (
        f"📅 _{format_timestamp(activity.date)}_\n"
        f"📝 {escape_markdown(activity.content)}\n"
        f"Urgência: {urgency_emoji_label(activity.urgency)}\n"
        f"Impacto: {impact_emoji_label(activity.impact)}"
    )


def build_brag_text(user, activities, days: int, limit: int = DEFAULT_ACTIVITY_LIMIT, generated_at: datetime = None) -> str:
    """
    Monta o Brag Document do período.

    `activities` deve vir da mais recente para a mais antiga; acima de
    `limit` apenas as mais recentes entram no texto (o PDF leva todas).
    """
    generated_at = generated_at or now_local()
    shown = list(activities)[:limit]

    sections = [
        f"📋 {BRAG_TITLE}",
        _user_header(user),
        f"🗓️ Período: {format_report_period(period_start(days, generated_at), generated_at)}",
        ACTIVITIES_HEADER,
    ]
    text = "\n\n".join(sections) + "\n"
    text += f"\n{ACTIVITY_DIVIDER}\n".join(_activity_block(a) for a in shown)

    if len(activities) > limit:
        text += (
            f"\n\n_Resumo limitado a {limit} atividades mais recentes "
            f"de {len(activities)}. O PDF traz a lista completa._"
        )

    text += f"\n\n🔄 _Gerado em {format_timestamp(generated_at)}_"
    return text
