from sqlmodel import SQLModel, create_engine
from app.core.config import settings


def make_engine(url: str = None, **kwargs):
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        # persistence calls run in worker threads
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, echo=False, **kwargs)


engine = make_engine()


def init_db(bind=None):
    SQLModel.metadata.create_all(bind=bind or engine)


