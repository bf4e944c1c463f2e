# app/models/password_history.py
from datetime import datetime
from sqlalchemy import ForeignKey, String, Integer, DateTime, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.core.db import Base

class PasswordHistory(Base):
    __tablename__ = "password_history"
    __table_args__ = (UniqueConstraint("user_id", "position", name="uq_password_history_position"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    # 0 = la más reciente
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)   # **hash** bcrypt, nunca texto plano
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="password_history")
