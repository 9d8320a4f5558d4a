from sqlalchemy import BigInteger, Column, DateTime, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id = Column(BigInteger, primary_key=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
