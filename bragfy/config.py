"""
bragfy/config.py — Configurações via variáveis de ambiente (.env)
"""

import os
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent
PACKAGE_DIR = Path(__file__).resolve().parent

# -----------------------------
# Telegram
# -----------------------------
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN") or os.getenv("BOT_TOKEN")

# -----------------------------
# Banco de dados
# -----------------------------
DATABASE_URL = os.getenv("DATABASE_URL")
if DATABASE_URL:
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)
else:
    DATABASE_URL = f"sqlite:///{BASE_DIR / 'bragfy.db'}"

# -----------------------------
# LLM (OpenRouter)
# -----------------------------
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_URL = os.getenv("OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions")
LLM_MODEL = os.getenv("LLM_MODEL", "meta-llama/llama-3-8b-instruct")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))

# -----------------------------
# NLU
# -----------------------------
INTENT_DATA_PATH = PACKAGE_DIR / "data" / "intents.csv"
INTENT_MODEL_PATH = Path(os.getenv("INTENT_MODEL_PATH", str(BASE_DIR / "models" / "intent_pipeline.pkl")))
INTENT_THRESHOLD = float(os.getenv("INTENT_THRESHOLD", "0.65"))

# -----------------------------
# Relatórios e servidor
# -----------------------------
PDF_RENDERER = os.getenv("PDF_RENDERER", "template")
TIMEZONE = os.getenv("BRAGFY_TIMEZONE", "America/Sao_Paulo")
HASH_SALT = os.getenv("HASH_SALT", "bragfy")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging():
    """Logging padrão da aplicação (chamado apenas no ponto de entrada)."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, LOG_LEVEL, logging.INFO),
    )
    # O httpx loga a URL completa das requisições, que inclui o token do bot
    logging.getLogger("httpx").setLevel(logging.WARNING)
