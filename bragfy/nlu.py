"""
bragfy/nlu.py — Classificação de intenção de mensagens livres

Um classificador estatístico (TF-IDF de n-gramas de caracteres + regressão
logística) decide se o texto é um pedido de PDF, um pedido de Brag Document
em texto ou uma atividade comum. Por cima dele ficam regras de lista branca
(comandos exatos), lista negra (relatos de atividade) e checagem de
palavras-chave, que cortam falsos positivos do modelo.
"""

import logging
import re
import threading
import unicodedata
from dataclasses import dataclass
from typing import Optional

import joblib
import numpy as np
import pandas as pd
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline

from bragfy import config

logger = logging.getLogger(__name__)

INTENT_PDF = "generate_pdf"
INTENT_BRAG_TEXT = "generate_brag_text"
INTENT_ACTIVITY = "activity"

# Comandos exatos (já normalizados) que dispensam o modelo
WHITELIST = {
    "/brag": INTENT_BRAG_TEXT,
    "/bragfy": INTENT_BRAG_TEXT,
    "bragfy": INTENT_BRAG_TEXT,
    "brag": INTENT_BRAG_TEXT,
    "gerar brag": INTENT_BRAG_TEXT,
    "gerar documento": INTENT_BRAG_TEXT,
    "gerar relatorio": INTENT_BRAG_TEXT,
    "gerar resumo": INTENT_BRAG_TEXT,
    "brag document": INTENT_BRAG_TEXT,
    "/pdf": INTENT_PDF,
    "pdf": INTENT_PDF,
    "gerar pdf": INTENT_PDF,
    "gerar um pdf": INTENT_PDF,
}

PDF_KEYWORDS = ("pdf", "arquivo")
DOCUMENT_KEYWORDS = ("brag", "documento", "relatorio", "resumo", "texto")
COMMAND_VERBS = (
    "gerar", "gera", "gere", "criar", "cria", "crie", "quero", "queria",
    "exportar", "exporta", "mostrar", "mostra", "ver", "fazer", "faz",
    "faca", "manda", "mande", "enviar", "envia", "baixar", "converter",
)

# Marcadores de relato de atividade (passado em primeira pessoa etc.)
ACTIVITY_MARKERS = (
    "completei", "finalizei", "terminei", "resolvi", "implementei",
    "comecei", "entreguei", "participei", "apresentei", "corrigi",
    "conclui", "desenvolvi", "criei", "ajudei", "revisei", "escrevi",
    "publiquei", "automatizei", "preparei", "fiz", "hoje eu", "ontem eu",
    "reuniao com", "deu certo", "deu super certo",
)

MAX_COMMAND_WORDS = 8

_model = None
_model_lock = threading.Lock()


@dataclass
class IntentResult:
    intent: str
    score: float


@dataclass
class IntentMatch:
    is_match: bool
    confidence: float
    intent: Optional[str]

    def __bool__(self):
        return self.is_match


def normalize_text(text: str) -> str:
    """Minúsculas, sem acentos e com espaços colapsados."""
    text = unicodedata.normalize("NFD", (text or "").strip().lower())
    text = "".join(ch for ch in text if unicodedata.category(ch) != "Mn")
    return re.sub(r"\s+", " ", text)


def _words(normalized: str):
    return re.findall(r"[/\w]+", normalized)


def _has_any(words, keywords) -> bool:
    return any(word in keywords for word in words)


def has_command_form(normalized: str) -> bool:
    """Verbo de comando + palavra-chave de documento/PDF."""
    words = _words(normalized)
    return _has_any(words, COMMAND_VERBS) and (
        _has_any(words, PDF_KEYWORDS) or _has_any(words, DOCUMENT_KEYWORDS)
    )


def looks_like_activity(normalized: str) -> bool:
    padded = f" {normalized} "
    return any(f" {marker} " in padded for marker in ACTIVITY_MARKERS)


# -----------------------------
# Modelo
# -----------------------------
def load_corpus(path=None) -> pd.DataFrame:
    df = pd.read_csv(path or config.INTENT_DATA_PATH)
    df = df.dropna(subset=["text", "intent"])
    df["text"] = df["text"].map(normalize_text)
    return df


def build_pipeline() -> Pipeline:
    return Pipeline(steps=[
        ("tfidf", TfidfVectorizer(analyzer="char_wb", ngram_range=(2, 4), sublinear_tf=True)),
        ("classifier", LogisticRegression(C=10.0, max_iter=1000, class_weight="balanced")),
    ])


def train_pipeline(df: pd.DataFrame = None) -> Pipeline:
    df = load_corpus() if df is None else df
    pipeline = build_pipeline()
    pipeline.fit(df["text"], df["intent"])
    return pipeline


def get_model():
    """Carrega o pipeline persistido uma única vez; sem arquivo, treina em memória."""
    global _model
    if _model is not None:
        return _model

    with _model_lock:
        if _model is None:
            if config.INTENT_MODEL_PATH.exists():
                _model = joblib.load(config.INTENT_MODEL_PATH)
                logger.info(f"[NLU] Pipeline carregado de {config.INTENT_MODEL_PATH}")
            else:
                logger.info("[NLU] Modelo persistido não encontrado, treinando em memória...")
                _model = train_pipeline()
                logger.info("[NLU] Modelo treinado com sucesso!")
    return _model


def set_model(model):
    """Substitui o modelo em uso (None força novo carregamento)."""
    global _model
    with _model_lock:
        _model = model


def _predict(normalized: str):
    model = get_model()
    probabilities = model.predict_proba([normalized])[0]
    best = int(np.argmax(probabilities))
    return str(model.classes_[best]), float(probabilities[best])


# -----------------------------
# API pública
# -----------------------------
def classify_message(message: str, threshold: float = None) -> Optional[IntentResult]:
    """
    Identifica a intenção de uma mensagem.

    Retorna None quando a mensagem deve ser tratada como atividade.
    """
    threshold = config.INTENT_THRESHOLD if threshold is None else threshold
    normalized = normalize_text(message)
    if not normalized:
        return None

    if normalized in WHITELIST:
        return IntentResult(WHITELIST[normalized], 1.0)

    command_form = has_command_form(normalized)
    if looks_like_activity(normalized) and not command_form:
        logger.debug(f'[NLU] Relato de atividade, ignorando: "{message}"')
        return None

    if len(_words(normalized)) > MAX_COMMAND_WORDS and not command_form:
        return None

    try:
        intent, score = _predict(normalized)
    except Exception:
        logger.exception("[NLU] Erro ao classificar mensagem")
        return None

    if intent == INTENT_ACTIVITY or score <= threshold:
        logger.info(f'[NLU] Nenhuma intenção clara detectada para: "{message}"')
        return None

    words = _words(normalized)
    if intent == INTENT_PDF and not _has_any(words, PDF_KEYWORDS):
        return None
    if intent == INTENT_BRAG_TEXT and not _has_any(words, DOCUMENT_KEYWORDS):
        return None

    logger.info(f"[NLU] Intenção detectada: {intent} (score: {score:.2f})")
    return IntentResult(intent, score)


def _match(message: str, intent: str) -> IntentMatch:
    result = classify_message(message)
    if result is not None and result.intent == intent:
        return IntentMatch(True, result.score, intent)
    return IntentMatch(False, 0.0, None)


def is_pdf_request(message: str) -> IntentMatch:
    return _match(message, INTENT_PDF)


def is_brag_text_request(message: str) -> IntentMatch:
    return _match(message, INTENT_BRAG_TEXT)
