# backend/models/users.py
from sqlalchemy import Column, Integer, String
from database import Base

# User account; the email is recorded as the actor of every stock movement
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
