"""SQLAlchemy models for saved articles, summaries and daily digests."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    uid = Column(String(128), unique=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class Article(Base):
    __tablename__ = "saved_articles"
    __table_args__ = (UniqueConstraint("user_id", "url", name="uq_saved_articles_user_url"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(2048), nullable=False)
    title = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class ArticleSummary(Base):
    __tablename__ = "saved_article_summaries"

    id = Column(Integer, primary_key=True)
    article_id = Column(
        Integer,
        ForeignKey("saved_articles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    summary = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class DailyDigest(Base):
    __tablename__ = "user_daily_summaries"
    __table_args__ = (
        UniqueConstraint("user_id", "generated_date", name="uq_user_daily_summaries_user_date"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    summary = Column(Text, nullable=False)
    generated_date = Column(Date, nullable=False)
    # Null until speech generation has finished
    audio_url = Column(String(2048))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class DigestArticle(Base):
    __tablename__ = "user_daily_summary_saved_articles"

    id = Column(Integer, primary_key=True)
    digest_id = Column(
        Integer,
        ForeignKey("user_daily_summaries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # An article is folded into at most one digest
    article_id = Column(
        Integer,
        ForeignKey("saved_articles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
