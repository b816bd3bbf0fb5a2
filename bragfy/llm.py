"""
bragfy/llm.py — Análise de perfil profissional via OpenRouter
"""

import logging
from typing import NamedTuple

import httpx

from bragfy import config
from bragfy.timeutils import to_local

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Você é um gestor de tecnologia e produto com vasta experiência. Com base na lista de "
    "atividades a seguir, faça uma análise do perfil profissional da pessoa que realizou essas "
    "ações. Identifique padrões de comportamento, estilo de trabalho, possíveis pontos de atenção "
    "e sugestões de desenvolvimento. Seja objetivo e profissional."
)

FRIENDLY_ERROR = (
    "Desculpe, não foi possível completar a análise do seu perfil. Por favor, tente novamente "
    "mais tarde ou entre em contato com o suporte. ({code})"
)


class LLMResult(NamedTuple):
    success: bool
    result: str


class KeyValidation(NamedTuple):
    is_valid: bool
    key_type: str
    message: str = ""


def format_activities_for_prompt(activities) -> str:
    """Uma linha por atividade: '• [AAAA-MM-DD] conteúdo'."""
    return "\n".join(
        f"• [{to_local(activity.date).strftime('%Y-%m-%d')}] {activity.content}"
        for activity in activities
    )


def validate_openrouter_key(api_key: str) -> KeyValidation:
    if not api_key:
        return KeyValidation(False, "invalid", "OPENROUTER_API_KEY não está definida nas variáveis de ambiente")
    if api_key.startswith("sk-or-"):
        return KeyValidation(True, "sk-or")
    return KeyValidation(
        False, "invalid", "Formato de chave OpenRouter API inválido. Use apenas chaves com prefixo sk-or-"
    )


def _failure(code: str) -> LLMResult:
    return LLMResult(False, FRIENDLY_ERROR.format(code=code))


async def analyze_profile_with_llm(activities_text: str, client: httpx.AsyncClient = None, api_key: str = None) -> LLMResult:
    """
    Envia as atividades ao modelo e devolve a análise.

    Falhas nunca levantam exceção: o resultado traz uma mensagem amigável
    com o código do erro (ERRO-LLM-100, -200, -<status HTTP> ou -999).
    """
    api_key = config.OPENROUTER_API_KEY if api_key is None else api_key
    validation = validate_openrouter_key(api_key)
    if not validation.is_valid:
        logger.error(f"[LLM] {validation.message}")
        return _failure("ERRO-LLM-100")

    payload = {
        "model": config.LLM_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": activities_text},
        ],
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    logger.info(f"[LLM] Enviando requisição para a OpenRouter API (modelo: {config.LLM_MODEL})")
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.LLM_TIMEOUT) as own_client:
                response = await own_client.post(config.OPENROUTER_URL, json=payload, headers=headers)
        else:
            response = await client.post(config.OPENROUTER_URL, json=payload, headers=headers)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.error(f"[LLM] OpenRouter respondeu {status}: {e.response.text[:500]}")
        return _failure(f"ERRO-LLM-{status}")
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"[LLM] Erro ao chamar OpenRouter API: {e}")
        return _failure("ERRO-LLM-999")

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None

    if not content:
        logger.error(f"[LLM] Resposta inválida da API: {data}")
        return _failure("ERRO-LLM-200")

    logger.info("[LLM] Análise recebida com sucesso")
    return LLMResult(True, content)
