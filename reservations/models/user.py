from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from reservations.db import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="guest")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
