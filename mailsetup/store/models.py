"""
Database models for the account store.
"""

import os
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


class HostAuthRecord(Base):
    """
    Server settings of one direction (receive or send) of an account.
    """

    __tablename__ = "host_auths"

    id = Column(Integer, primary_key=True)

    protocol = Column(String(32), nullable=True)
    address = Column(String(255), nullable=True)
    port = Column(Integer, nullable=False, default=-1)
    flags = Column(Integer, nullable=False, default=0)

    # Credentials
    login = Column(String(255), nullable=True)
    password = Column(String(255), nullable=True)
    domain = Column(String(255), nullable=True)
    client_cert_alias = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<HostAuthRecord {self.protocol}://{self.login}@{self.address}:{self.port}>"


class PolicyRecord(Base):
    """
    Security policy of an account.
    """

    __tablename__ = "policies"

    id = Column(Integer, primary_key=True)
    settings = Column(Text, nullable=False)  # Stored as JSON

    def __repr__(self):
        return f"<PolicyRecord {self.id}>"


class AccountRecord(Base):
    """
    Model for email accounts.
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)

    # Account information
    display_name = Column(String(255), nullable=True)
    email_address = Column(String(255), nullable=True)
    sender_name = Column(String(255), nullable=True)
    signature = Column(Text, nullable=True)

    # Sync settings
    flags = Column(Integer, nullable=False, default=0)
    sync_interval = Column(Integer, nullable=False, default=-1)
    sync_lookback = Column(Integer, nullable=False, default=0)
    security_sync_key = Column(String(255), nullable=True)
    protocol_version = Column(String(32), nullable=True)

    host_auth_recv_id = Column(Integer, ForeignKey("host_auths.id"), nullable=True)
    host_auth_send_id = Column(Integer, ForeignKey("host_auths.id"), nullable=True)
    policy_id = Column(Integer, ForeignKey("policies.id"), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    host_auth_recv = relationship("HostAuthRecord", foreign_keys=[host_auth_recv_id])
    host_auth_send = relationship("HostAuthRecord", foreign_keys=[host_auth_send_id])
    policy = relationship("PolicyRecord")

    def __repr__(self):
        return f"<AccountRecord {self.email_address}>"


def init_db(db_url: str):
    """
    Create the engine and the tables that do not exist yet.

    Args:
        db_url: SQLAlchemy database URL

    Returns:
        The engine
    """
    url = make_url(db_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # Store work runs on worker threads
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            directory = os.path.dirname(url.database)
            if directory:
                os.makedirs(directory, exist_ok=True)

    engine = create_engine(url, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine):
    """
    Get a session factory bound to engine.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)
