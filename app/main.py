import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .db import get_db, init_db
from . import crud, schemas, graph, network

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="People Network", lifespan=lifespan)


def _bad_request(e: ValueError):
    if isinstance(e, crud.ReferentialIntegrityError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@app.get("/health")
def health():
    return {"ok": True}


# ── Lookup tables ──

@app.get("/titles", response_model=list[schemas.LookupOut])
def titles(db: Session = Depends(get_db)):
    return crud.list_titles(db)

@app.post("/titles", response_model=schemas.LookupOut)
def add_title(body: schemas.LookupCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_title(db, body.code, body.description)
    except ValueError as e:
        raise _bad_request(e)

@app.put("/titles/{title_id}", response_model=schemas.LookupOut)
def edit_title(title_id: int, body: schemas.LookupCreate, db: Session = Depends(get_db)):
    try:
        t = crud.update_title(db, title_id, body.code, body.description)
    except ValueError as e:
        raise _bad_request(e)
    if t is None:
        raise HTTPException(status_code=404, detail=f"Title {title_id} not found")
    return t

@app.delete("/titles/{title_id}")
def remove_title(title_id: int, db: Session = Depends(get_db)):
    try:
        deleted = crud.delete_title(db, title_id)
    except ValueError as e:
        raise _bad_request(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Title {title_id} not found")
    return {"ok": True}

@app.get("/genders", response_model=list[schemas.LookupOut])
def genders(db: Session = Depends(get_db)):
    return crud.list_genders(db)

@app.post("/genders", response_model=schemas.LookupOut)
def add_gender(body: schemas.LookupCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_gender(db, body.code, body.description)
    except ValueError as e:
        raise _bad_request(e)

@app.put("/genders/{gender_id}", response_model=schemas.LookupOut)
def edit_gender(gender_id: int, body: schemas.LookupCreate, db: Session = Depends(get_db)):
    try:
        g = crud.update_gender(db, gender_id, body.code, body.description)
    except ValueError as e:
        raise _bad_request(e)
    if g is None:
        raise HTTPException(status_code=404, detail=f"Gender {gender_id} not found")
    return g

@app.delete("/genders/{gender_id}")
def remove_gender(gender_id: int, db: Session = Depends(get_db)):
    try:
        deleted = crud.delete_gender(db, gender_id)
    except ValueError as e:
        raise _bad_request(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Gender {gender_id} not found")
    return {"ok": True}

@app.get("/relationships", response_model=list[schemas.LookupOut])
def relationship_types(db: Session = Depends(get_db)):
    return crud.list_relationship_types(db)

@app.post("/relationships", response_model=schemas.LookupOut)
def add_relationship_type(body: schemas.LookupCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_relationship_type(db, body.code, body.description)
    except ValueError as e:
        raise _bad_request(e)

@app.put("/relationships/{relationship_id}", response_model=schemas.LookupOut)
def edit_relationship_type(relationship_id: int, body: schemas.LookupCreate, db: Session = Depends(get_db)):
    try:
        r = crud.update_relationship_type(db, relationship_id, body.code, body.description)
    except ValueError as e:
        raise _bad_request(e)
    if r is None:
        raise HTTPException(status_code=404, detail=f"Relationship {relationship_id} not found")
    return r

@app.delete("/relationships/{relationship_id}")
def remove_relationship_type(relationship_id: int, db: Session = Depends(get_db)):
    try:
        deleted = crud.delete_relationship_type(db, relationship_id)
    except ValueError as e:
        raise _bad_request(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Relationship {relationship_id} not found")
    return {"ok": True}


# ── People ──

@app.get("/people", response_model=list[schemas.PersonOut])
def people(filter_text: str | None = Query(None, alias="filter"),
           sort: str | None = None,
           sort_dir: str | None = Query(None, alias="dir"),
           db: Session = Depends(get_db)):
    return crud.list_people(db, filter_text=filter_text, sort_field=sort, sort_dir=sort_dir)

@app.post("/people", response_model=schemas.PersonOut)
def add_person(body: schemas.PersonCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_person(db, **body.model_dump())
    except ValueError as e:
        raise _bad_request(e)

@app.get("/people/{person_id}", response_model=schemas.PersonOut)
def person(person_id: int, db: Session = Depends(get_db)):
    p = crud.get_person(db, person_id)
    if p is None:
        raise HTTPException(status_code=404, detail=f"Person {person_id} not found")
    return p

@app.put("/people/{person_id}", response_model=schemas.PersonOut)
def edit_person(person_id: int, body: schemas.PersonCreate, db: Session = Depends(get_db)):
    try:
        p = crud.update_person(db, person_id, **body.model_dump())
    except ValueError as e:
        raise _bad_request(e)
    if p is None:
        raise HTTPException(status_code=404, detail=f"Person {person_id} not found")
    return p

@app.delete("/people/{person_id}")
def remove_person(person_id: int, db: Session = Depends(get_db)):
    if not crud.delete_person(db, person_id):
        raise HTTPException(status_code=404, detail=f"Person {person_id} not found")
    return {"ok": True}


# ── Person relationships ──

def _owned_relationship(db: Session, person_id: int, person_relationship_id: int):
    pr = crud.get_person_relationship(db, person_relationship_id)
    if pr is None or pr.source_person_id != person_id:
        raise HTTPException(status_code=404, detail=f"Person relationship {person_relationship_id} not found")
    return pr

@app.get("/people/{person_id}/relationships", response_model=list[schemas.PersonRelationshipOut])
def person_relationships(person_id: int,
                         filter_text: str | None = Query(None, alias="filter"),
                         sort_field: str | None = Query(None, alias="sortField"),
                         sort_dir: str | None = Query(None, alias="sortDir"),
                         db: Session = Depends(get_db)):
    if crud.get_person(db, person_id) is None:
        raise HTTPException(status_code=404, detail=f"Person {person_id} not found")
    return crud.list_person_relationships(db, person_id, filter_text=filter_text,
                                          sort_field=sort_field, sort_dir=sort_dir)

@app.post("/people/{person_id}/relationships", response_model=schemas.PersonRelationshipOut)
def add_person_relationship(person_id: int, body: schemas.PersonRelationshipCreate,
                            db: Session = Depends(get_db)):
    try:
        return crud.create_person_relationship(db, person_id, body.related_person_id, body.relationship_id)
    except ValueError as e:
        raise _bad_request(e)

@app.put("/people/{person_id}/relationships/{person_relationship_id}",
         response_model=schemas.PersonRelationshipOut)
def edit_person_relationship(person_id: int, person_relationship_id: int,
                             body: schemas.PersonRelationshipCreate, db: Session = Depends(get_db)):
    _owned_relationship(db, person_id, person_relationship_id)
    try:
        return crud.update_person_relationship(db, person_relationship_id,
                                               body.related_person_id, body.relationship_id)
    except ValueError as e:
        raise _bad_request(e)

@app.delete("/person-relationships/{person_relationship_id}")
def remove_person_relationship(person_relationship_id: int, db: Session = Depends(get_db)):
    if not crud.delete_person_relationship(db, person_relationship_id):
        raise HTTPException(status_code=404, detail=f"Person relationship {person_relationship_id} not found")
    return {"ok": True}


# ── Views ──

@app.get("/graph/data", response_model=schemas.GraphOut)
def graph_data(db: Session = Depends(get_db)):
    return graph.build_graph(db)

@app.get("/people/{person_id}/network", response_model=schemas.NetworkOut)
def person_network(person_id: int, depth: int = Query(network.MIN_DEPTH), db: Session = Depends(get_db)):
    try:
        result = network.build_network(db, person_id, depth)
    except network.FocalPersonNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return schemas.NetworkOut.from_result(result)
