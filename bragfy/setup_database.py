"""
Cria o schema do Bragfy no banco configurado em DATABASE_URL.

Uso: python -m bragfy.setup_database [--url postgresql://...]
"""

import argparse
import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from bragfy import config, database

logger = logging.getLogger(__name__)


def setup(url: str = None) -> bool:
    try:
        engine = database.configure(url)
        if not database.check_database_connection():
            logger.error("❌ Não foi possível conectar ao banco de dados.")
            return False

        database.init_db()
        tables = inspect(engine).get_table_names()
        logger.info(f"📋 Tabelas disponíveis: {', '.join(sorted(tables))}")
        logger.info("🚀 Banco de dados pronto para uso!")
        return True
    except SQLAlchemyError as e:
        logger.error(f"❌ Falha na criação do schema: {e}")
        return False


def main():
    parser = argparse.ArgumentParser(description="Inicializa o banco de dados do Bragfy")
    parser.add_argument("--url", help="URL do banco (padrão: DATABASE_URL ou SQLite local)")
    args = parser.parse_args()

    config.configure_logging()
    raise SystemExit(0 if setup(args.url) else 1)


if __name__ == "__main__":
    main()
