"""
Persistence layer: SQLAlchemy models and the DBStorage singleton.

`storage.reload()` is called by the application factory (or any script)
once the database URL is known.
"""
from models.db_storage import DBStorage

storage = DBStorage()
