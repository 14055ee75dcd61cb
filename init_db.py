from nexo.backend.src.core.config import get_settings
from nexo.backend.src.db import get_engine
from nexo.backend.src.models import *  # noqa
from nexo.backend.src.models.base import Base


def init_db():
    print(f"Connecting to {get_settings().database_url}")
    Base.metadata.create_all(bind=get_engine())
    print("Tables created successfully!")


if __name__ == "__main__":
    init_db()
