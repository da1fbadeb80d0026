from datetime import date
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional


class LookupCreate(BaseModel):
    code: str
    description: str

    @field_validator("code", "description")
    @classmethod
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class LookupOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    code: str
    description: str


class PersonCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    notes: Optional[str] = None
    title_id: Optional[int] = None
    gender_id: Optional[int] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def name_not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def email_shape(cls, v):
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("must be a valid email address")
        return v


class PersonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    first_name: str
    last_name: str
    display_name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    notes: Optional[str] = None
    title_id: Optional[int] = None
    gender_id: Optional[int] = None


class PersonRelationshipCreate(BaseModel):
    related_person_id: int
    relationship_id: int


class PersonRelationshipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    source_person_id: int
    related_person_id: int
    relationship_id: int


# ── Graph view ──

class NodeData(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dateOfBirth: Optional[str] = None
    gender: Optional[str] = None
    genderCode: str
    notes: Optional[str] = None
    weight: int


class EdgeData(BaseModel):
    id: str
    source: str
    target: str
    label: str


class CyNode(BaseModel):
    data: NodeData


class CyEdge(BaseModel):
    data: EdgeData


class GraphOut(BaseModel):
    nodes: list[CyNode]
    edges: list[CyEdge]
    relationshipTypes: list[str]


# ── Network view ──

class PersonRef(BaseModel):
    id: int
    name: str


class ConnectionOut(BaseModel):
    person: PersonRef
    relationshipType: str
    connectedThrough: PersonRef
    depth: int


class DepthOut(BaseModel):
    depth: int
    connections: list[ConnectionOut]


class NetworkOut(BaseModel):
    focalPerson: PersonRef
    maxDepth: int
    totalConnections: int
    depths: list[DepthOut]

    @classmethod
    def from_result(cls, result):
        def ref(p):
            return PersonRef(id=p.id, name=p.display_name)

        return cls(
            focalPerson=ref(result.focal_person),
            maxDepth=result.max_depth,
            totalConnections=result.total_connections,
            depths=[
                DepthOut(depth=d, connections=[
                    ConnectionOut(
                        person=ref(c.person),
                        relationshipType=c.relationship.description,
                        connectedThrough=ref(c.connected_through),
                        depth=c.depth,
                    )
                    for c in result.connections(d)
                ])
                for d in result.depths
            ],
        )
