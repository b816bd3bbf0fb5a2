import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from bragfy.database import Activity, session_scope
from bragfy.timeutils import LOCAL_TIMEZONE, now_local, to_utc_naive

logger = logging.getLogger(__name__)

VALID_LEVELS = ("high", "medium", "low")

URGENCY_LABELS = {"high": "Alta", "medium": "Média", "low": "Baixa"}
IMPACT_LABELS = {"high": "Alto", "medium": "Médio", "low": "Baixo"}
LEVEL_EMOJIS = {"high": "🔴", "medium": "🟠", "low": "🟢"}


class ActivityError(Exception):
    """Falha de persistência ao criar ou buscar atividades."""


def create_activity(
    user_id: int,
    content: str,
    urgency: str = "medium",
    impact: str = "medium",
    date: datetime = None,
) -> Activity:
    """
    Cria uma atividade confirmada para o usuário.

    `date` é o momento em que a atividade aconteceu (ex.: horário extraído
    da mensagem); sem ele vale o instante do registro.
    """
    try:
        with session_scope() as session:
            activity = Activity(
                user_id=user_id,
                content=content,
                urgency=urgency if urgency in VALID_LEVELS else "medium",
                impact=impact if impact in VALID_LEVELS else "medium",
                confirmed=True,
            )
            if date is not None:
                activity.date = to_utc_naive(date)
            session.add(activity)
            session.flush()
            return activity
    except SQLAlchemyError as e:
        logger.exception("Erro ao criar atividade")
        raise ActivityError("Falha ao criar atividade") from e


def period_start(days: int, now: datetime = None) -> datetime:
    """Meia-noite local de (hoje - days + 1), em UTC. days=1 significa 'hoje'."""
    current = now.astimezone(LOCAL_TIMEZONE) if now is not None else now_local()
    first_day = (current - timedelta(days=days - 1)).date()
    midnight = LOCAL_TIMEZONE.localize(datetime(first_day.year, first_day.month, first_day.day))
    return to_utc_naive(midnight)


def get_activities_by_period(user_id: int, days: int, now: datetime = None):
    """Atividades confirmadas do período, da mais recente para a mais antiga."""
    try:
        start = period_start(days, now)
        with session_scope() as session:
            rows = session.scalars(
                select(Activity)
                .where(
                    Activity.user_id == user_id,
                    Activity.date >= start,
                    Activity.confirmed.is_(True),
                )
                .order_by(Activity.date.desc(), Activity.id.desc())
            )
            return list(rows)
    except SQLAlchemyError as e:
        logger.exception(f"Erro ao buscar atividades dos últimos {days} dias")
        raise ActivityError(f"Falha ao buscar atividades para o período de {days} dias") from e


def format_urgency_label(urgency: str) -> str:
    return URGENCY_LABELS.get(urgency, URGENCY_LABELS["medium"])


def format_impact_label(impact: str) -> str:
    return IMPACT_LABELS.get(impact, IMPACT_LABELS["medium"])


def urgency_emoji_label(urgency: str) -> str:
    key = urgency if urgency in LEVEL_EMOJIS else "medium"
    return f"{LEVEL_EMOJIS[key]} {format_urgency_label(key)}"


def impact_emoji_label(impact: str) -> str:
    key = impact if impact in LEVEL_EMOJIS else "medium"
    return f"{LEVEL_EMOJIS[key]} {format_impact_label(key)}"
