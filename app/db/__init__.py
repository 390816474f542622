# Database module
from .engine import check_connection, get_engine, get_session_factory, init_schema, session_scope

__all__ = ["check_connection", "get_engine", "get_session_factory", "init_schema", "session_scope"]
