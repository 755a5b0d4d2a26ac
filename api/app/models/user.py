from datetime import datetime
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.database import Base, utcnow


class User(Base):
    """Point-holder identity. Profile data lives with the user service."""

    __tablename__ = 'users'

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    handle: Mapped[str] = mapped_column(String(50), unique=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    balance: Mapped['UserBalance'] = relationship(
        'UserBalance', back_populates='user', uselist=False,
    )
