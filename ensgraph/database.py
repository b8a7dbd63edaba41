"""
Remote relational mirror of user-authored edges.

Edges are stored in a ``friendships`` table through SQLAlchemy, in normalized
orientation so (a, b) and (b, a) are one row. Every operation degrades to an
empty result or ``False`` when no database is configured or the database
fails, logging instead of raising.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, and_, create_engine, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .logger import get_logger
from .normalize import normalize_edge
from .storage import DuplicateEdgeError, EdgeStore

logger = get_logger()

Base = declarative_base()


class Friendship(Base):
    """A declared relationship between two names."""

    __tablename__ = "friendships"
    __table_args__ = (UniqueConstraint("name_1", "name_2", name="uq_friendship_pair"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name_1 = Column(String, nullable=False)
    name_2 = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name_1": self.name_1,
            "name_2": self.name_2,
            "created_at": self.created_at,
        }


def _ensure_sqlite_dir(database_url: str) -> None:
    prefix = "sqlite:///"
    if database_url.startswith(prefix) and database_url != prefix + ":memory:":
        Path(database_url[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)


def init_database(database_url: str):
    """
    Initialize database and create tables.

    Args:
        database_url: SQLAlchemy URL, e.g. sqlite:///data/edges.db

    Returns:
        The SQLAlchemy engine
    """
    _ensure_sqlite_dir(database_url)
    engine = create_engine(database_url)
    Base.metadata.create_all(engine)
    return engine


def get_session(database_url: str):
    """
    Get database session.

    Args:
        database_url: SQLAlchemy URL

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(database_url)
    Session = sessionmaker(bind=engine)
    return Session()


def _pair_filter(name_1: str, name_2: str):
    return or_(
        and_(Friendship.name_1 == name_1, Friendship.name_2 == name_2),
        and_(Friendship.name_1 == name_2, Friendship.name_2 == name_1),
    )


class RemoteEdgeStore:
    def __init__(self, database_url: Optional[str]):
        self.database_url = database_url
        self._sessionmaker = None

    @property
    def configured(self) -> bool:
        return bool(self.database_url)

    def _session(self):
        if self._sessionmaker is None:
            engine = init_database(self.database_url)
            self._sessionmaker = sessionmaker(bind=engine)
        return self._sessionmaker()

    def get_friendships(self) -> List[Dict[str, Any]]:
        """All stored friendships, newest first."""
        if not self.configured:
            logger.warning("Remote edge store not configured")
            return []
        try:
            session = self._session()
            try:
                rows = (
                    session.query(Friendship)
                    .order_by(Friendship.created_at.desc(), Friendship.id.desc())
                    .all()
                )
                return [row.to_dict() for row in rows]
            finally:
                session.close()
        except SQLAlchemyError as e:
            logger.error("Error fetching friendships", error=str(e))
            return []

    def has_friendship(self, name_1: str, name_2: str) -> bool:
        if not self.configured or not name_1 or not name_2:
            return False
        a, b = normalize_edge(name_1, name_2)
        try:
            session = self._session()
            try:
                return session.query(Friendship.id).filter(_pair_filter(a, b)).first() is not None
            finally:
                session.close()
        except SQLAlchemyError as e:
            logger.error("Error checking friendship", error=str(e))
            return False

    def add_friendship(self, name_1: str, name_2: str) -> bool:
        """Store a friendship; an existing pair in either orientation counts as success."""
        if not self.configured:
            logger.warning("Remote edge store not configured")
            return False
        if not name_1 or not name_2:
            logger.error("Both ENS names are required")
            return False

        a, b = normalize_edge(name_1, name_2)
        try:
            session = self._session()
            try:
                existing = session.query(Friendship.id).filter(_pair_filter(a, b)).first()
                if existing:
                    logger.info("Friendship already exists", name_1=a, name_2=b)
                    return True
                session.add(Friendship(name_1=a, name_2=b))
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
            finally:
                session.close()
        except SQLAlchemyError as e:
            logger.error("Error adding friendship", error=str(e))
            return False

        logger.info(f"Added friendship: {a} <-> {b}")
        return True

    def delete_friendship(self, name_1: str, name_2: str) -> bool:
        """Delete a friendship stored in either orientation."""
        if not self.configured:
            logger.warning("Remote edge store not configured")
            return False
        if not name_1 or not name_2:
            logger.error("Both ENS names are required")
            return False

        a, b = name_1.strip(), name_2.strip()
        try:
            session = self._session()
            try:
                session.query(Friendship).filter(_pair_filter(a, b)).delete(
                    synchronize_session=False
                )
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
            finally:
                session.close()
        except SQLAlchemyError as e:
            logger.error("Error deleting friendship", error=str(e))
            return False

        logger.info(f"Deleted friendship: {a} <-> {b}")
        return True


def friendships_to_pairs(friendships: List[Dict[str, Any]]) -> List[Tuple[str, str]]:
    return [(f["name_1"], f["name_2"]) for f in friendships]


def sync_local_to_remote(store: EdgeStore, remote: RemoteEdgeStore) -> Tuple[int, int]:
    """Push every local custom edge; returns (pushed, failed)."""
    pushed = failed = 0
    for a, b in store.list_custom_edges():
        if remote.add_friendship(a, b):
            pushed += 1
        else:
            failed += 1
    return pushed, failed


def pull_remote_to_local(store: EdgeStore, remote: RemoteEdgeStore) -> int:
    """Merge remote friendships into the local store; returns how many were added."""
    added = 0
    for pair in friendships_to_pairs(remote.get_friendships()):
        try:
            store.add_edge(pair)
        except DuplicateEdgeError:
            continue
        except ValueError as e:
            logger.warning("Skipping invalid remote friendship", pair=list(pair), error=str(e))
            continue
        added += 1
    return added
