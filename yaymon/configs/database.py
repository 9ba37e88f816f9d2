from pymongo import MongoClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from yaymon import models  # noqa: F401  (registers the tables on SQLModel.metadata)

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def make_engine(database_url: str, echo: bool = False):
    connect_args = {}
    extra = {}
    if database_url.startswith("sqlite"):
        # worker threads share the connection
        connect_args = {"check_same_thread": False}
        if database_url in IN_MEMORY_URLS:
            extra["poolclass"] = StaticPool
    return create_engine(database_url, echo=echo, connect_args=connect_args, **extra)


def init_db(engine):
    SQLModel.metadata.create_all(engine)


def make_mongo_client(mongo_url: str) -> MongoClient:
    return MongoClient(mongo_url, serverSelectionTimeoutMS=5000)
