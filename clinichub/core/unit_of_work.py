"""
Unit of work handle shared by every onboarding collaborator.

The orchestrator opens one unit of work per submission and passes it to each
collaborator; nothing a collaborator writes becomes visible until the
orchestrator commits, and a rollback discards all of it.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy.orm import Session

from clinichub.core.database import SessionLocal

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Transactional scope over a single SQLAlchemy session."""
    
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory
        self._session: Optional[Session] = None
        self._after_commit: list = []
        self._after_rollback: list = []
    
    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = self._session_factory()
        return self._session
    
    @property
    def in_transaction(self) -> bool:
        return self._session is not None and self._session.in_transaction()
    
    @contextmanager
    def transaction(self) -> Iterator["UnitOfWork"]:
        """
        Run the enclosed block atomically.
        
        Commits when the block exits normally and rolls back on any exception,
        which is re-raised unchanged. Callbacks registered with
        ``on_commit`` run only after a successful commit, those registered
        with ``on_rollback`` only after a rollback.
        """
        session = self.session
        self._after_commit = []
        self._after_rollback = []
        try:
            yield self
            session.commit()
        except Exception:
            session.rollback()
            callbacks, self._after_rollback = self._after_rollback, []
            self._after_commit = []
            logger.info("Unit of work rolled back")
            for callback in callbacks:
                callback()
            raise
        
        callbacks, self._after_commit = self._after_commit, []
        self._after_rollback = []
        for callback in callbacks:
            callback()
    
    @contextmanager
    def savepoint(self) -> Iterator[Session]:
        """Nested transaction; only its own writes are undone on error."""
        nested = self.session.begin_nested()
        try:
            yield self.session
            nested.commit()
        except Exception:
            nested.rollback()
            raise
    
    def on_commit(self, callback: Callable[[], None]) -> None:
        self._after_commit.append(callback)
    
    def on_rollback(self, callback: Callable[[], None]) -> None:
        self._after_rollback.append(callback)
    
    def add(self, instance) -> None:
        self.session.add(instance)
    
    def flush(self) -> None:
        self.session.flush()
    
    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
    
    def __enter__(self) -> "UnitOfWork":
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
