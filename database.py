# database.py
import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import Column, DateTime, Integer, Text, create_engine, desc
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """Stores UTC and always hands back an aware datetime; SQLite drops the offset."""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class MessageRecord(Base):
    """One chat exchange. Written once, never updated."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_message = Column(Text, nullable=False)
    ai_response = Column(Text, nullable=False)
    timestamp = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc), index=True)

    def to_dict(self) -> dict:
        return {
            "userMessage": self.user_message,
            "aiResponse": self.ai_response,
            "timestamp": self.timestamp,
        }


class MessageStore:
    """SQL-backed chat history."""

    def __init__(self, database_url: str):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
        self.SessionFactory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def _get_db(self) -> Session:
        return self.SessionFactory()

    def init_db(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("Connected to database %s", self.engine.url.render_as_string(hide_password=True))

    def save(self, user_message: str, ai_response: str) -> MessageRecord:
        with self._get_db() as db:
            record = MessageRecord(user_message=user_message, ai_response=ai_response)
            db.add(record)
            db.commit()
            return record

    def recent(self, limit: int = HISTORY_LIMIT) -> List[MessageRecord]:
        """Newest first. Insertion order breaks timestamp ties."""
        with self._get_db() as db:
            return (
                db.query(MessageRecord)
                .order_by(desc(MessageRecord.timestamp), desc(MessageRecord.id))
                .limit(limit)
                .all()
            )

    def count(self) -> int:
        with self._get_db() as db:
            return db.query(MessageRecord).count()
