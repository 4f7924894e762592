from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from datetime import datetime
from database import Base


class Subscription(Base):
    """
    One subscription row per user. Written only by payment reconciliation.
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    # Account lives in the managed auth backend; this is its opaque id
    user_id = Column(String, unique=True, nullable=False, index=True)
    plan_id = Column(String, nullable=False)
    plan_name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="inactive")
    provider_order_reference = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Proposal(Base):
    """
    A generated proposal and its emotional resonance score.
    """
    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False, index=True)
    client_name = Column(String, nullable=False)
    project_type = Column(String, nullable=False)
    project_description = Column(Text, nullable=False)
    tone = Column(String, nullable=False)
    industry = Column(String, nullable=False)
    budget = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    emotional_score = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
