"""
bragfy/timeutils.py — Extração de horário em texto livre e formatação de datas
"""

import re
from datetime import datetime
from typing import NamedTuple, Optional

import pytz

from bragfy import config

LOCAL_TIMEZONE = pytz.timezone(config.TIMEZONE)

MESES = [
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
]

# Ordem importa: o prefixo "às/as" tem prioridade sobre o horário solto
TIME_PATTERNS = [
    # "às 10h", "as 10h", "às 10h30", "as 10:30", "às 9"
    re.compile(
        r"(?:\s+|^)(?P<prefix>às|as)\s+(?P<hours>\d{1,2})(?:(?P<separator>h|:)(?P<minutes>\d{1,2})?)?",
        re.IGNORECASE,
    ),
    # "10h", "10h30", "10:30"
    re.compile(r"\b(?P<hours>\d{1,2})(?P<separator>h|:)(?P<minutes>\d{1,2})?", re.IGNORECASE),
]


class TimeExtraction(NamedTuple):
    extracted_time: Optional[datetime]
    clean_message: str


def now_local() -> datetime:
    return datetime.now(LOCAL_TIMEZONE)


def to_local(dt: datetime) -> datetime:
    """Converte para o fuso local; datas sem tzinfo são tratadas como UTC."""
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(LOCAL_TIMEZONE)


def to_utc_naive(dt: datetime) -> datetime:
    """Formato de armazenamento: UTC sem tzinfo. Datas ingênuas são tratadas como locais."""
    if dt.tzinfo is None:
        dt = LOCAL_TIMEZONE.localize(dt)
    return dt.astimezone(pytz.utc).replace(tzinfo=None)


def extract_time(message: str, reference_date: datetime = None) -> TimeExtraction:
    """
    Extrai um horário ("às 10h", "10:30", "10h30") de uma mensagem.

    O horário é aplicado sobre a data de referência (no fuso local) e a
    expressão encontrada é removida do texto. Sem horário válido, a mensagem
    volta intacta e `extracted_time` é None.
    """
    if not message:
        return TimeExtraction(None, message or "")

    if reference_date is None:
        reference = now_local()
    elif reference_date.tzinfo is None:
        reference = LOCAL_TIMEZONE.localize(reference_date)
    else:
        reference = reference_date.astimezone(LOCAL_TIMEZONE)

    for pattern in TIME_PATTERNS:
        match = pattern.search(message)
        if not match:
            continue

        hours = int(match.group("hours"))
        minutes = int(match.group("minutes") or 0)
        if hours > 23 or minutes > 59:
            continue

        naive = reference.replace(tzinfo=None, hour=hours, minute=minutes, second=0, microsecond=0)
        extracted = LOCAL_TIMEZONE.localize(naive)

        clean = message.replace(match.group(0), " ", 1)
        clean = re.sub(r"\s{2,}", " ", clean).strip()
        return TimeExtraction(extracted, clean)

    return TimeExtraction(None, message)


def format_timestamp(dt: datetime) -> str:
    """DD/MM/YY HH:MM:SS no fuso local."""
    return to_local(dt).strftime("%d/%m/%y %H:%M:%S")


def format_date(dt: datetime) -> str:
    return to_local(dt).strftime("%d/%m/%Y")


def format_report_date(dt: datetime) -> str:
    """Ex.: 'dia 05 de março de 2025'."""
    local = to_local(dt)
    return f"dia {local.day:02d} de {MESES[local.month - 1]} de {local.year}"


def format_report_period(start: datetime, end: datetime) -> str:
    start_local, end_local = to_local(start), to_local(end)
    if start_local.date() == end_local.date():
        return format_report_date(start)
    return f"{format_date(start)} até {format_date(end)}"
