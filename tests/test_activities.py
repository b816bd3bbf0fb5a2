from datetime import datetime
from types import SimpleNamespace

import pytest

from bragfy import database
from bragfy.activities import (
    ActivityError,
    create_activity,
    format_impact_label,
    format_urgency_label,
    get_activities_by_period,
    impact_emoji_label,
    period_start,
    urgency_emoji_label,
)
from bragfy.timeutils import LOCAL_TIMEZONE
from bragfy.users import create_user

NOW = LOCAL_TIMEZONE.localize(datetime(2025, 3, 5, 15, 0))


def local(*args):
    return LOCAL_TIMEZONE.localize(datetime(*args))


@pytest.fixture
def user(db, telegram_user):
    return create_user(telegram_user)


def test_create_activity_defaults(user):
    activity = create_activity(user.id, "Revisei o plano de testes")

    assert activity.id is not None
    assert activity.confirmed is True
    assert activity.urgency == "medium"
    assert activity.impact == "medium"


def test_create_activity_with_levels_and_date(user):
    activity = create_activity(user.id, "Deploy", urgency="high", impact="low", date=local(2025, 3, 5, 10, 0))

    assert activity.urgency == "high"
    assert activity.impact == "low"
    # Armazenado em UTC
    assert activity.date == datetime(2025, 3, 5, 13, 0)


def test_create_activity_invalid_level_falls_back_to_medium(user):
    activity = create_activity(user.id, "Deploy", urgency="urgentíssimo", impact=None)

    assert activity.urgency == "medium"
    assert activity.impact == "medium"


def test_create_activity_wraps_database_errors(db, user):
    database.Base.metadata.drop_all(db)

    with pytest.raises(ActivityError, match="Falha ao criar atividade"):
        create_activity(user.id, "Deploy")


def test_period_start_is_local_midnight():
    assert period_start(1, NOW) == datetime(2025, 3, 5, 3, 0)
    assert period_start(7, NOW) == datetime(2025, 2, 27, 3, 0)


def test_get_activities_by_period(user):
    create_activity(user.id, "hoje cedo", date=local(2025, 3, 5, 9, 0))
    create_activity(user.id, "hoje à tarde", date=local(2025, 3, 5, 14, 0))
    create_activity(user.id, "início da janela", date=local(2025, 2, 27, 0, 30))
    create_activity(user.id, "fora da janela", date=local(2025, 2, 26, 23, 0))

    today = get_activities_by_period(user.id, 1, now=NOW)
    week = get_activities_by_period(user.id, 7, now=NOW)

    assert [a.content for a in today] == ["hoje à tarde", "hoje cedo"]
    assert [a.content for a in week] == ["hoje à tarde", "hoje cedo", "início da janela"]


def test_get_activities_ignores_other_users(user):
    other = create_user(SimpleNamespace(id=99, first_name="Outro"))
    create_activity(other.id, "não é minha", date=local(2025, 3, 5, 9, 0))

    assert get_activities_by_period(user.id, 30, now=NOW) == []


def test_get_activities_raises_on_database_error(db, user):
    database.Base.metadata.drop_all(db)

    with pytest.raises(ActivityError):
        get_activities_by_period(user.id, 7, now=NOW)


def test_labels():
    assert format_urgency_label("high") == "Alta"
    assert format_urgency_label("low") == "Baixa"
    assert format_urgency_label("???") == "Média"
    assert format_impact_label("high") == "Alto"
    assert format_impact_label("medium") == "Médio"
    assert urgency_emoji_label("high") == "🔴 Alta"
    assert urgency_emoji_label("medium") == "🟠 Média"
    assert impact_emoji_label("low") == "🟢 Baixo"
