"""
db/ - Storage Layer
===================
PostgreSQL connection pools and the stored-procedure session.
This layer is the lowest in the architecture and knows nothing about entities.
"""

from procmap.db.connection import close_pool, get_connection, init_pool, release_connection
from procmap.db.session import StorageSession, open_session

__all__ = [
    "StorageSession",
    "close_pool",
    "get_connection",
    "init_pool",
    "open_session",
    "release_connection",
]
