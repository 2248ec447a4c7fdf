from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import os
import logging

# Retrieve main logger
logger = logging.getLogger("main")

Base = declarative_base()


def make_engine(url):
    """Create an engine; in-memory SQLite is shared across threads"""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    if url.startswith("sqlite:///"):
        directory = os.path.dirname(url[len("sqlite:///"):])
        if directory:
            os.makedirs(directory, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url)


def init_db(url):
    """Create tables and return a session factory bound to the engine"""
    engine = make_engine(url)
    Base.metadata.create_all(engine)
    logger.debug(f"Local store database ready at {url}")
    return sessionmaker(bind=engine, expire_on_commit=False)
