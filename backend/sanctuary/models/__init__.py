"""
Sanctuary Backend — ORM Models
================================

Importing this package registers every table on `Base.metadata`
(used by `init_models()` and Alembic autogenerate).
"""

from sanctuary.models.event import Event
from sanctuary.models.sermon import Sermon
from sanctuary.models.user import User

__all__ = ["Event", "Sermon", "User"]
