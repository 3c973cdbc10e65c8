import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship

from wallet.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    credentials = relationship("Credential", back_populates="user", cascade="all, delete-orphan")
    shares = relationship("Share", back_populates="user", cascade="all, delete-orphan")


class Credential(Base):
    __tablename__ = "credentials"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200))
    type = Column(String(50), nullable=False)
    category = Column(String(50), nullable=False)  # degree, certificate, transcript, diploma, license, badge, other
    issuer = Column(String(100), nullable=False)
    issuer_name = Column(String(255))
    issuer_domain = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    issued_date = Column(DateTime, nullable=False)
    expires_at = Column(DateTime)
    status = Column(String(20), nullable=False, default="valid")  # valid, expired, revoked
    payload = Column(JSON, default=dict)
    hash = Column(String(128))
    deleted_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="credentials")


class Share(Base):
    __tablename__ = "shares"

    id = Column(String(64), primary_key=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    cred_id = Column(Uuid(as_uuid=True), ForeignKey("credentials.id"), nullable=False, index=True)
    policy = Column(JSON, nullable=False)  # {"preset": ..., "fieldVisibility": {...}, "selectedFields": [...]}
    expires_at = Column(DateTime, nullable=False)
    max_views = Column(Integer, nullable=False)
    views = Column(Integer, nullable=False, default=0)
    access_code = Column(String(255))
    revoked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="shares")
    credential = relationship("Credential")


class ShareView(Base):
    __tablename__ = "share_views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    share_id = Column(String(64), ForeignKey("shares.id"), nullable=False, index=True)
    viewed_at = Column(DateTime, default=datetime.utcnow)
    ip_hash = Column(String(64))
    ua_hash = Column(String(64))
    device_type = Column(String(20))  # mobile, tablet, desktop, bot, unknown
    country = Column(String(64))
    city = Column(String(128))
    referrer_domain = Column(String(255))
    ok = Column(Boolean, nullable=False)
    access_code_attempt = Column(Boolean, nullable=False, default=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True)
    action = Column(String(100), nullable=False)
    resource_type = Column(String(50))
    resource_id = Column(String(64))
    event_metadata = Column("metadata", JSON, default=dict)
    risk_level = Column(String(10), nullable=False, default="low")  # low, medium, high
    created_at = Column(DateTime, default=datetime.utcnow)


class RateLimitEvent(Base):
    __tablename__ = "rate_limit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    endpoint = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
