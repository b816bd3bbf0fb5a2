import hashlib
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from bragfy.database import User, UserAnalysis, session_scope

logger = logging.getLogger(__name__)

MAX_ANALYSES_PER_USER = 3


def user_exists(telegram_id: int) -> bool:
    """Verifica se o usuário do Telegram já está cadastrado."""
    try:
        with session_scope() as session:
            found = session.scalar(select(User.id).where(User.telegram_id == telegram_id))
            return found is not None
    except SQLAlchemyError:
        logger.exception(f"Erro ao verificar existência de usuário {telegram_id}")
        return False


def get_user_by_telegram_id(telegram_id: int):
    """Retorna o usuário ou None (inclusive em caso de erro no banco)."""
    try:
        with session_scope() as session:
            return session.scalar(select(User).where(User.telegram_id == telegram_id))
    except SQLAlchemyError:
        logger.exception(f"Erro ao buscar usuário {telegram_id}")
        return None


def create_user(telegram_user) -> User:
    """Cadastra um usuário a partir do objeto `telegram.User`."""
    try:
        with session_scope() as session:
            user = User(
                telegram_id=telegram_user.id,
                first_name=telegram_user.first_name,
                last_name=getattr(telegram_user, "last_name", None) or None,
                username=getattr(telegram_user, "username", None) or None,
            )
            session.add(user)
            session.flush()
            logger.info(f"Usuário {user.telegram_id} cadastrado (ID: {user.id})")
            return user
    except SQLAlchemyError:
        logger.exception(f"Erro ao criar usuário {telegram_user.id}")
        raise


def save_user_analysis(user_id: int, telegram_id: int, content: str) -> UserAnalysis:
    """
    Salva uma análise de perfil mantendo apenas as 3 mais recentes.
    Quando o usuário já tem 3, a mais antiga é removida antes da inserção.
    """
    try:
        with session_scope() as session:
            count = session.scalar(
                select(func.count(UserAnalysis.id)).where(UserAnalysis.user_id == user_id)
            )
            if count >= MAX_ANALYSES_PER_USER:
                oldest = session.scalar(
                    select(UserAnalysis)
                    .where(UserAnalysis.user_id == user_id)
                    .order_by(UserAnalysis.created_at.asc(), UserAnalysis.id.asc())
                    .limit(1)
                )
                if oldest is not None:
                    session.delete(oldest)
                    session.flush()

            analysis = UserAnalysis(user_id=user_id, telegram_id=telegram_id, content=content)
            session.add(analysis)
            session.flush()
            logger.info(f"Análise salva com sucesso para usuário {user_id} (ID: {analysis.id})")
            return analysis
    except SQLAlchemyError:
        logger.exception(f"Erro ao salvar análise para usuário {user_id}")
        raise


def get_user_analyses(user_id: int, limit: int = MAX_ANALYSES_PER_USER):
    """Análises do usuário, da mais recente para a mais antiga."""
    try:
        with session_scope() as session:
            rows = session.scalars(
                select(UserAnalysis)
                .where(UserAnalysis.user_id == user_id)
                .order_by(UserAnalysis.created_at.desc(), UserAnalysis.id.desc())
                .limit(limit)
            )
            return list(rows)
    except SQLAlchemyError:
        logger.exception(f"Erro ao buscar análises para usuário {user_id}")
        return []


def generate_user_hash(telegram_id: int, username: str = None, salt: str = "") -> str:
    """Hash SHA-256 estável do usuário, seguro para uso em nomes de arquivo e URLs públicas."""
    raw = f"{telegram_id}:{username or ''}:{salt}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
