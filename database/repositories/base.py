from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


class BaseRepository:
    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    @property
    def dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

    def dialect_insert(self, model):
        """INSERT construct supporting ON CONFLICT for the bound dialect."""
        if self.dialect_name == 'sqlite':
            return sqlite.insert(model)
        return postgresql.insert(model)
