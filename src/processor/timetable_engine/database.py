"""Database setup and models for persisting extracted schedules."""

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Session

from .models import ExtractionResult


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class TimetableSource(Base):
    """Represents the input timetable file source."""
    __tablename__ = "timetable_sources"

    id = Column(Integer, primary_key=True)
    file_path = Column(String(500), nullable=False)
    processed_at = Column(DateTime, nullable=True)
    raw_cell_count = Column(Integer, nullable=False, default=0)


class ScheduleRecord(Base):
    """Represents a single validated schedule entry."""
    __tablename__ = "schedule_records"

    id = Column(Integer, primary_key=True)
    source_id = Column(Integer, ForeignKey("timetable_sources.id"), nullable=False)
    day = Column(String(20), nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    subject = Column(String(500), nullable=False)
    teacher = Column(String(500), nullable=False, default="")
    room = Column(String(200), nullable=False, default="")
    block = Column(String(100), nullable=False, default="")
    class_name = Column(String(200), nullable=False, default="")


def get_db_engine(db_path: str = "timetable_data.db"):
    """
    Create and return a SQLAlchemy Engine connected to SQLite database.

    Args:
        db_path: Path to the SQLite database file, or ":memory:"

    Returns:
        sqlalchemy.Engine: Database engine instance
    """
    if db_path == ":memory:":
        return create_engine("sqlite://", echo=False)

    full_db_path = Path(db_path).expanduser().resolve()
    full_db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{full_db_path}", echo=False)


def create_tables(engine) -> None:
    """
    Create all database tables defined in Base.metadata.

    Args:
        engine: SQLAlchemy Engine instance
    """
    Base.metadata.create_all(engine)


def save_result(engine, file_path: str, result: ExtractionResult) -> int:
    """
    Persist one extraction result.

    Args:
        engine: SQLAlchemy Engine instance (tables must exist)
        file_path: Source document path, stored for reference
        result: Final pipeline output

    Returns:
        Id of the new TimetableSource row
    """
    with Session(engine) as session:
        source = TimetableSource(
            file_path=str(file_path),
            processed_at=datetime.now(timezone.utc),
            raw_cell_count=result.raw_cell_count,
        )
        session.add(source)
        session.flush()

        for entry in result.entries:
            session.add(ScheduleRecord(source_id=source.id, **entry.to_dict()))

        session.commit()
        return source.id
