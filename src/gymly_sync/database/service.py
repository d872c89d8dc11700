"""Database service for the local workout store."""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, func, inspect, select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from alembic import command
from alembic.config import Config as AlembicConfig

from ..models import natural_day_key
from .models import Base, Day, Exercise, ExerciseSet, Profile, Split

logger = logging.getLogger(__name__)


class DatabaseService:
    """Service for database operations and transaction management."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Initialize database service.

        Args:
            db_path: Path to SQLite database file.
                    If None, uses default ~/.gymly-sync/workouts.db
        """
        if db_path is None:
            db_path = Path.home() / ".gymly-sync" / "workouts.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        db_exists = self.db_path.exists()

        # Reads come from worker threads as well as the event loop thread
        db_url = f"sqlite:///{self.db_path}"
        self.engine = create_engine(
            db_url, echo=False, connect_args={"check_same_thread": False}
        )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

        logger.info("Database initialized at: %s", self.db_path)

        if not db_exists:
            logger.info("New database detected, initializing schema...")
            self.init_db()

    def init_db(self) -> None:
        """Initialize database schema.

        This creates tables using SQLAlchemy and then stamps Alembic to mark the
        database as current (since all tables are created).
        """
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema created successfully")

        self._stamp_migrations()

    def _alembic_config(self) -> Optional[AlembicConfig]:
        """Build an Alembic config pointing at this database, if available."""
        # alembic.ini and alembic/ live in the project root
        package_dir = Path(__file__).parent.parent.parent.parent
        alembic_ini = package_dir / "alembic.ini"
        alembic_dir = package_dir / "alembic"

        if not alembic_ini.exists() or not alembic_dir.exists():
            logger.debug("Alembic not found at %s", package_dir)
            return None

        alembic_cfg = AlembicConfig(str(alembic_ini))
        alembic_cfg.set_main_option("script_location", str(alembic_dir))
        alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{self.db_path}")
        alembic_cfg.attributes["configure_logger"] = False
        return alembic_cfg

    def _stamp_migrations(self) -> None:
        """Stamp database as being at the latest migration version."""
        alembic_cfg = self._alembic_config()
        if alembic_cfg is None:
            logger.warning("Alembic not found, skipping migration stamp")
            return

        try:
            command.stamp(alembic_cfg, "head")
            logger.info("Database stamped with latest migration version")
        except Exception as e:
            logger.error("Failed to stamp migrations: %s", e)
            logger.warning("Database may need manual migration")

    def run_migrations(self) -> None:
        """Run Alembic migrations to upgrade database to latest version."""
        alembic_cfg = self._alembic_config()
        if alembic_cfg is None:
            logger.warning("Alembic not found, skipping migrations")
            return

        try:
            command.upgrade(alembic_cfg, "head")
            logger.info("Database migrations applied successfully")
        except Exception as e:
            logger.error("Failed to run migrations: %s", e)
            logger.warning("Continuing with base schema only")

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            SQLAlchemy Session object

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a unit of work in one transaction.

        Commits when the block exits normally, rolls back and re-raises if it
        raises. Nothing written inside the block is visible to other sessions
        until the commit.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def is_initialized(self) -> bool:
        """Check if the database service is properly initialized.

        Returns:
            True if the engine works and the workout tables exist
        """
        try:
            inspector = inspect(self.engine)
            missing = [
                table
                for table in ("splits", "days", "exercises", "exercise_sets")
                if not inspector.has_table(table)
            ]
            if missing:
                logger.debug("Required tables missing: %s", ", ".join(missing))
                return False

            with self.SessionLocal() as session:
                session.execute(select(1))

            return True
        except Exception as e:
            logger.debug("Database initialization check failed: %s", e)
            return False

    # =========================================================================
    # Day Operations
    # =========================================================================

    def get_all_days(self) -> List[Day]:
        """Get all days with their exercises loaded."""
        with self.get_session() as session:
            stmt = (
                select(Day)
                .options(selectinload(Day.exercises))
                .order_by(Day.date, Day.day_of_split)
            )
            return list(session.scalars(stmt).all())

    def count_days(self) -> int:
        """Count day records."""
        with self.get_session() as session:
            return session.scalar(select(func.count(Day.id))) or 0

    def find_day(
        self,
        session: Session,
        date: str,
        name: str,
        split_id: Optional[str] = None,
    ) -> Optional[Day]:
        """Find a day by natural key within an open session.

        A day's identity is its split plus (date, name): template days of
        two splits may share a name. Days without a split only match other
        days without a split.

        Args:
            session: Open session (usually a merge transaction)
            date: Date key ("" for split template days)
            name: Day name
            split_id: Local split the day belongs to, if any

        Returns:
            Day object or None if not found
        """
        date_key, name_key = natural_day_key(date, name)
        if split_id is None:
            split_clause = Day.split_id.is_(None)
        else:
            split_clause = Day.split_id == split_id
        stmt = (
            select(Day)
            .options(selectinload(Day.exercises))
            .where(split_clause, Day.date == date_key, Day.name == name_key)
            .limit(1)
        )
        return session.scalar(stmt)

    def get_day_by_natural_key(
        self, date: str, name: str, split_id: Optional[str] = None
    ) -> Optional[Day]:
        """Get a day by natural key.

        Args:
            date: Date key
            name: Day name
            split_id: Local split the day belongs to, if any

        Returns:
            Day object or None if not found
        """
        with self.get_session() as session:
            return self.find_day(session, date, name, split_id)

    def get_day_exercises(self, day_id: str) -> List[Exercise]:
        """Get a day's exercises in order, with sets loaded."""
        with self.get_session() as session:
            stmt = (
                select(Exercise)
                .options(selectinload(Exercise.sets))
                .where(Exercise.day_id == day_id)
                .order_by(Exercise.exercise_order)
            )
            return list(session.scalars(stmt).all())

    # =========================================================================
    # Split Operations
    # =========================================================================

    def get_split_by_id(self, split_id: str) -> Optional[Split]:
        """Get split by ID."""
        with self.get_session() as session:
            return session.get(Split, split_id)

    def get_all_splits(self) -> List[Split]:
        """Get all splits."""
        with self.get_session() as session:
            return list(session.scalars(select(Split).order_by(Split.name)).all())

    def find_split(
        self, session: Session, split_id: Optional[str] = None, name: Optional[str] = None
    ) -> Optional[Split]:
        """Find a split by ID, falling back to name, within an open session."""
        if split_id:
            split = session.get(Split, split_id)
            if split is not None:
                return split
        if name:
            return session.scalar(select(Split).where(Split.name == name).limit(1))
        return None

    # =========================================================================
    # Profile Operations
    # =========================================================================

    def get_profile(self, account_id: str) -> Optional[Profile]:
        """Get the local profile for an account."""
        with self.get_session() as session:
            return session.get(Profile, account_id)

    def upsert_profile(self, profile_data: Dict[str, Any]) -> Profile:
        """Create or update the local profile for an account.

        Args:
            profile_data: Profile values including ``account_id``

        Returns:
            Stored Profile object
        """
        account_id = profile_data["account_id"]
        with self.transaction() as session:
            profile = session.get(Profile, account_id)
            if profile is None:
                profile = Profile(account_id=account_id)
                session.add(profile)

            for key, value in profile_data.items():
                if hasattr(profile, key) and value is not None:
                    setattr(profile, key, value)

            if profile_data.get("updated_at") is None:
                profile.updated_at = datetime.utcnow()

            session.flush()
            logger.debug("Stored profile for account %s", account_id)
            return profile

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with row counts per table
        """
        with self.get_session() as session:
            return {
                "splits": session.scalar(select(func.count(Split.id))) or 0,
                "days": session.scalar(select(func.count(Day.id))) or 0,
                "exercises": session.scalar(select(func.count(Exercise.id))) or 0,
                "sets": session.scalar(select(func.count(ExerciseSet.id))) or 0,
                "profiles": session.scalar(select(func.count(Profile.account_id)))
                or 0,
            }

    def close(self) -> None:
        """Close database connections."""
        self.engine.dispose()
        logger.debug("Database connections closed")
