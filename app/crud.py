import logging
from datetime import date
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased, joinedload
from .models import Title, Gender, Relationship, Person, PersonRelationship

logger = logging.getLogger(__name__)


class ReferentialIntegrityError(ValueError):
    """Delete refused because other rows still reference the target."""


def _commit(db: Session, conflict_message: str):
    """Commit, turning a unique-constraint race into the same ValueError the pre-checks raise."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Commit rejected by constraint: %s", e.orig)
        raise ValueError(conflict_message) from e


# ── Lookup tables ──
# Title, Gender and Relationship share the (code, description) shape.

def _normalize_code(model, code: str) -> str:
    code = (code or "").strip().upper()
    if not code:
        raise ValueError("Code is required")
    max_len = model.__table__.c.code.type.length
    if len(code) > max_len:
        raise ValueError(f"Code must be at most {max_len} character(s)")
    return code

def _normalize_description(description: str) -> str:
    description = (description or "").strip()
    if not description:
        raise ValueError("Description is required")
    return description

def _check_lookup_unique(db: Session, model, code: str, description: str, exclude_id: int | None = None):
    q = db.query(model)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    if q.filter(model.code == code).first():
        raise ValueError(f"{model.__name__} code '{code}' already exists")
    if q.filter(func.lower(model.description) == description.lower()).first():
        raise ValueError(f"{model.__name__} '{description}' already exists")

def _create_lookup(db: Session, model, code: str, description: str):
    code, description = _normalize_code(model, code), _normalize_description(description)
    _check_lookup_unique(db, model, code, description)
    row = model(code=code, description=description)
    db.add(row)
    _commit(db, f"{model.__name__} '{code}' / '{description}' already exists")
    db.refresh(row)
    logger.info("Created %s %s (%s)", model.__name__.lower(), row.code, row.id)
    return row

def _update_lookup(db: Session, model, row_id: int, code: str, description: str):
    row = db.get(model, row_id)
    if row is None:
        return None
    code, description = _normalize_code(model, code), _normalize_description(description)
    _check_lookup_unique(db, model, code, description, exclude_id=row_id)
    row.code, row.description = code, description
    _commit(db, f"{model.__name__} '{code}' / '{description}' already exists")
    db.refresh(row)
    return row

def _delete_lookup(db: Session, model, row_id: int, in_use_query) -> bool:
    row = db.get(model, row_id)
    if row is None:
        return False
    in_use = in_use_query.count()
    if in_use:
        raise ReferentialIntegrityError(
            f"{model.__name__} '{row.description}' is used by {in_use} record(s)"
        )
    db.delete(row); db.commit()
    logger.info("Deleted %s %s", model.__name__.lower(), row_id)
    return True


def create_title(db: Session, code: str, description: str):
    return _create_lookup(db, Title, code, description)

def list_titles(db: Session):
    return db.query(Title).order_by(Title.code.asc()).all()

def update_title(db: Session, title_id: int, code: str, description: str):
    return _update_lookup(db, Title, title_id, code, description)

def delete_title(db: Session, title_id: int) -> bool:
    return _delete_lookup(db, Title, title_id, db.query(Person).filter(Person.title_id == title_id))

def create_gender(db: Session, code: str, description: str):
    return _create_lookup(db, Gender, code, description)

def list_genders(db: Session):
    return db.query(Gender).order_by(Gender.code.asc()).all()

def update_gender(db: Session, gender_id: int, code: str, description: str):
    return _update_lookup(db, Gender, gender_id, code, description)

def delete_gender(db: Session, gender_id: int) -> bool:
    return _delete_lookup(db, Gender, gender_id, db.query(Person).filter(Person.gender_id == gender_id))

def create_relationship_type(db: Session, code: str, description: str):
    return _create_lookup(db, Relationship, code, description)

def list_relationship_types(db: Session):
    return db.query(Relationship).order_by(Relationship.code.asc()).all()

def get_relationship_type(db: Session, relationship_id: int):
    return db.get(Relationship, relationship_id)

def update_relationship_type(db: Session, relationship_id: int, code: str, description: str):
    return _update_lookup(db, Relationship, relationship_id, code, description)

def delete_relationship_type(db: Session, relationship_id: int) -> bool:
    in_use = db.query(PersonRelationship).filter(PersonRelationship.relationship_id == relationship_id)
    return _delete_lookup(db, Relationship, relationship_id, in_use)


# ── People ──

_PERSON_SORTS = {
    "firstName": (Person.first_name, Person.last_name),
    "lastName": (Person.last_name, Person.first_name),
    "email": (Person.email,),
}

def _check_person_fields(db: Session, email: str, title_id: int | None, gender_id: int | None,
                         exclude_id: int | None = None):
    q = db.query(Person).filter(func.lower(Person.email) == email)
    if exclude_id is not None:
        q = q.filter(Person.id != exclude_id)
    if q.first():
        raise ValueError(f"Email '{email}' is already in use")
    if title_id is not None and db.get(Title, title_id) is None:
        raise ValueError(f"Title {title_id} does not exist")
    if gender_id is not None and db.get(Gender, gender_id) is None:
        raise ValueError(f"Gender {gender_id} does not exist")

def create_person(db: Session, first_name: str, last_name: str, email: str,
                  phone: str | None = None, date_of_birth: date | None = None,
                  notes: str | None = None, title_id: int | None = None,
                  gender_id: int | None = None):
    normalized = email.strip().lower()
    _check_person_fields(db, normalized, title_id, gender_id)
    p = Person(first_name=first_name, last_name=last_name, email=normalized, phone=phone,
               date_of_birth=date_of_birth, notes=notes, title_id=title_id, gender_id=gender_id)
    db.add(p)
    _commit(db, f"Email '{normalized}' is already in use")
    db.refresh(p)
    logger.info("Created person %s (%s)", p.id, p.email)
    return p

def update_person(db: Session, person_id: int, first_name: str, last_name: str, email: str,
                  phone: str | None = None, date_of_birth: date | None = None,
                  notes: str | None = None, title_id: int | None = None,
                  gender_id: int | None = None):
    """Replace every editable field of a person. Returns None if the id is unknown."""
    p = db.get(Person, person_id)
    if p is None:
        return None
    normalized = email.strip().lower()
    _check_person_fields(db, normalized, title_id, gender_id, exclude_id=person_id)
    p.first_name, p.last_name, p.email = first_name, last_name, normalized
    p.phone, p.date_of_birth, p.notes = phone, date_of_birth, notes
    p.title_id, p.gender_id = title_id, gender_id
    _commit(db, f"Email '{normalized}' is already in use")
    db.refresh(p)
    logger.info("Updated person %s", p.id)
    return p

def get_person(db: Session, person_id: int):
    return db.get(Person, person_id)

def list_people(db: Session, filter_text: str | None = None,
                sort_field: str | None = None, sort_dir: str | None = None):
    q = db.query(Person).options(joinedload(Person.title), joinedload(Person.gender))
    if filter_text and filter_text.strip():
        pattern = f"%{filter_text.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Person.first_name).like(pattern),
            func.lower(Person.last_name).like(pattern),
            func.lower(Person.email).like(pattern),
        ))
    if sort_field in _PERSON_SORTS:
        primary, *rest = _PERSON_SORTS[sort_field]
        primary = primary.desc() if (sort_dir or "").lower() == "desc" else primary.asc()
        q = q.order_by(primary, *(c.asc() for c in rest))
    else:
        q = q.order_by(Person.last_name.asc(), Person.first_name.asc())
    return q.all()

def delete_person(db: Session, person_id: int) -> bool:
    p = db.get(Person, person_id)
    if p is None:
        return False
    db.query(PersonRelationship).filter(or_(
        PersonRelationship.source_person_id == person_id,
        PersonRelationship.related_person_id == person_id,
    )).delete(synchronize_session=False)
    db.delete(p); db.commit()
    logger.info("Deleted person %s", person_id)
    return True


# ── Person relationships ──

_DUPLICATE_RELATIONSHIP = "This relationship already exists"

def _check_relationship_fields(db: Session, source_person_id: int, related_person_id: int,
                               relationship_id: int, exclude_id: int | None = None):
    if db.get(Person, source_person_id) is None:
        raise ValueError(f"Person {source_person_id} does not exist")
    if db.get(Person, related_person_id) is None:
        raise ValueError(f"Person {related_person_id} does not exist")
    if db.get(Relationship, relationship_id) is None:
        raise ValueError(f"Relationship {relationship_id} does not exist")

    q = db.query(PersonRelationship).filter(
        PersonRelationship.source_person_id == source_person_id,
        PersonRelationship.related_person_id == related_person_id,
        PersonRelationship.relationship_id == relationship_id,
    )
    if exclude_id is not None:
        q = q.filter(PersonRelationship.id != exclude_id)
    if q.first():
        raise ValueError(_DUPLICATE_RELATIONSHIP)

def create_person_relationship(db: Session, source_person_id: int, related_person_id: int,
                               relationship_id: int):
    _check_relationship_fields(db, source_person_id, related_person_id, relationship_id)
    pr = PersonRelationship(source_person_id=source_person_id,
                            related_person_id=related_person_id,
                            relationship_id=relationship_id)
    db.add(pr)
    _commit(db, _DUPLICATE_RELATIONSHIP)
    db.refresh(pr)
    logger.info("Linked person %s -> %s (relationship %s)",
                source_person_id, related_person_id, relationship_id)
    return pr

def get_person_relationship(db: Session, person_relationship_id: int):
    return db.get(PersonRelationship, person_relationship_id)

def update_person_relationship(db: Session, person_relationship_id: int,
                               related_person_id: int, relationship_id: int):
    """Repoint an edge at another person and/or type; the source person never changes."""
    pr = db.get(PersonRelationship, person_relationship_id)
    if pr is None:
        return None
    _check_relationship_fields(db, pr.source_person_id, related_person_id, relationship_id,
                               exclude_id=person_relationship_id)
    pr.related_person_id, pr.relationship_id = related_person_id, relationship_id
    _commit(db, _DUPLICATE_RELATIONSHIP)
    db.refresh(pr)
    logger.info("Updated person relationship %s", pr.id)
    return pr

def list_person_relationships(db: Session, source_person_id: int, filter_text: str | None = None,
                              sort_field: str | None = None, sort_dir: str | None = None):
    related = aliased(Person)
    rel_type = aliased(Relationship)
    q = (
        db.query(PersonRelationship)
        .join(related, PersonRelationship.related_person)
        .join(rel_type, PersonRelationship.relationship_type)
        .options(
            joinedload(PersonRelationship.related_person).joinedload(Person.title),
            joinedload(PersonRelationship.relationship_type),
        )
        .filter(PersonRelationship.source_person_id == source_person_id)
    )
    if filter_text and filter_text.strip():
        pattern = f"%{filter_text.strip().lower()}%"
        q = q.filter(or_(
            func.lower(related.first_name).like(pattern),
            func.lower(related.last_name).like(pattern),
            func.lower(rel_type.description).like(pattern),
        ))

    desc = (sort_dir or "").lower() == "desc"
    if sort_field == "firstName":
        q = q.order_by(related.first_name.desc() if desc else related.first_name.asc(),
                       related.last_name.asc())
    elif sort_field == "lastName":
        q = q.order_by(related.last_name.desc() if desc else related.last_name.asc(),
                       related.first_name.asc())
    elif sort_field == "relationship":
        q = q.order_by(rel_type.description.desc() if desc else rel_type.description.asc())
    else:
        q = q.order_by(related.last_name.asc(), related.first_name.asc())
    return q.all()

def delete_person_relationship(db: Session, person_relationship_id: int) -> bool:
    pr = db.get(PersonRelationship, person_relationship_id)
    if pr is None:
        return False
    db.delete(pr); db.commit()
    return True
