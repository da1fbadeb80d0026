from datetime import date, datetime, timezone
from sqlalchemy import String, Text, ForeignKey, Date, DateTime, Integer, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates


def _now():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)


class Title(TimestampMixin, Base):
    __tablename__ = "title"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(5), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Gender(TimestampMixin, Base):
    __tablename__ = "gender"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(1), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Relationship(TimestampMixin, Base):
    """A relationship type, e.g. ("PAR", "Parent")."""
    __tablename__ = "relationship"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Person(TimestampMixin, Base):
    __tablename__ = "person"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    title_id: Mapped[int | None] = mapped_column(ForeignKey("title.id"), nullable=True)
    gender_id: Mapped[int | None] = mapped_column(ForeignKey("gender.id"), nullable=True)

    title = relationship("Title")
    gender = relationship("Gender")

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value is not None else value

    @property
    def display_name(self) -> str:
        parts = [self.title.description] if self.title is not None else []
        parts += [self.first_name, self.last_name]
        return " ".join(p for p in parts if p).strip()


class PersonRelationship(TimestampMixin, Base):
    """Directed edge: source person --relationship--> related person."""
    __tablename__ = "person_relationship"
    __table_args__ = (
        UniqueConstraint("source_person_id", "related_person_id", "relationship_id",
                         name="uk_person_relationship"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_person_id: Mapped[int] = mapped_column(ForeignKey("person.id"), nullable=False)
    related_person_id: Mapped[int] = mapped_column(ForeignKey("person.id"), nullable=False)
    relationship_id: Mapped[int] = mapped_column(ForeignKey("relationship.id"), nullable=False)

    source_person = relationship("Person", foreign_keys=[source_person_id])
    related_person = relationship("Person", foreign_keys=[related_person_id])
    relationship_type = relationship("Relationship")
