# Re-export the canonical database helpers so routers can depend on carebook.db.session
from ..database import engine, create_db_and_tables, get_session

__all__ = [
    "engine",
    "create_db_and_tables",
    "get_session",
]
