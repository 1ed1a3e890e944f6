"""
Question content table.

Owned by the content collaborator; the scheduling core only reads it through
``SqlContentStore``.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class QuestionRecord(Base):
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    category: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    sub_category: Mapped[str] = mapped_column(Text, nullable=False, default="")
    regulation_category: Mapped[str | None] = mapped_column(Text)  # 'DS 301', 'DV 301', 'both' or NULL
    question_type: Mapped[str] = mapped_column(Text, nullable=False, default="open")
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    answers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    def __repr__(self) -> str:
        return f"<QuestionRecord id={self.id} category={self.category} sub={self.sub_category}>"
