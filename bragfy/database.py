"""
bragfy/database.py — Camada de persistência (SQLAlchemy ORM)

Postgres em produção (DATABASE_URL) e SQLite local como fallback.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from bragfy import config

logger = logging.getLogger(__name__)

Base = declarative_base()


def _now_utc():
    # Datas são gravadas em UTC sem tzinfo (o SQLite descarta o fuso)
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    telegram_id = Column(BigInteger, unique=True, nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=_now_utc, nullable=False)
    updated_at = Column(DateTime, default=_now_utc, onupdate=_now_utc, nullable=False)

    activities = relationship("Activity", back_populates="user", cascade="all, delete-orphan")
    analyses = relationship("UserAnalysis", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    def __repr__(self):
        return f"<User id={self.id} telegram_id={self.telegram_id}>"


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    date = Column(DateTime, default=_now_utc, nullable=False, index=True)
    urgency = Column(String(16), default="medium")
    impact = Column(String(16), default="medium")
    confirmed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_now_utc, nullable=False)
    updated_at = Column(DateTime, default=_now_utc, onupdate=_now_utc, nullable=False)

    user = relationship("User", back_populates="activities")

    def __repr__(self):
        return f"<Activity id={self.id} user_id={self.user_id}>"


class UserAnalysis(Base):
    __tablename__ = "user_analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    telegram_id = Column(BigInteger, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_now_utc, nullable=False)

    user = relationship("User", back_populates="analyses")


# -----------------------------
# Engine / Sessões
# -----------------------------
engine = None
SessionLocal = sessionmaker(expire_on_commit=False, future=True)


def _build_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}, "future": True}
        # Banco em memória precisa de uma única conexão compartilhada
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_size=5, max_overflow=10, pool_pre_ping=True, future=True)


def configure(url: str = None):
    """(Re)cria o engine e associa a fábrica de sessões a ele."""
    global engine
    url = url or config.DATABASE_URL
    if engine is not None:
        engine.dispose()
    engine = _build_engine(url)
    SessionLocal.configure(bind=engine)
    logger.info("Engine configurado (%s).", engine.dialect.name)
    return engine


def init_db():
    """Cria as tabelas se ainda não existirem."""
    if engine is None:
        configure()
    try:
        Base.metadata.create_all(engine)
        logger.info("✅ Banco de dados %s inicializado com sucesso.", engine.dialect.name)
    except SQLAlchemyError:
        logger.exception("❌ Erro crítico na inicialização do DB")
        raise


@contextmanager
def session_scope():
    """Sessão transacional: commit no sucesso, rollback em qualquer erro."""
    if engine is None:
        configure()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database_connection() -> bool:
    """Executa um SELECT 1 para verificar a conexão."""
    try:
        with session_scope() as session:
            session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        logger.exception("Erro ao conectar ao banco de dados")
        return False
