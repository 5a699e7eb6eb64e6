"""
Payload schemas for objects fetched from the remote manifest store.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

PRIMARY_METADATA_COMPONENT = "pinax.json"
DESCRIPTION_COMPONENT = "description.md"
GRAPH_COMPONENT = "cheimarros.json"
REF_COMPONENT_SUFFIX = ".ref.json"


class EntityManifest(BaseModel):
    """
    Versioned index of one entity's named components.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    pi: str = Field(min_length=1)
    ver: int
    ts: str
    manifest_cid: str = Field(min_length=1)
    prev_cid: str | None = None
    components: dict[str, str] = Field(default_factory=dict)
    parent_pi: str | None = None
    children_pi: tuple[str, ...] = ()
    note: str | None = None

    @field_validator("components", mode="before")
    @classmethod
    def _components_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("children_pi", mode="before")
    @classmethod
    def _children_default(cls, value: Any) -> Any:
        return () if value is None else value

    @property
    def ref_component_keys(self) -> list[str]:
        return [key for key in self.components if key.endswith(REF_COMPONENT_SUFFIX)]


class SourceMetadataRecord(BaseModel):
    """
    Primary descriptive metadata of an entity (the ``pinax.json`` component).

    ``type`` is kept as a free string so unlisted vocabulary values reach the
    crosswalk and fall back to its default instead of failing validation.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    title: str = Field(min_length=1)
    type: str
    creator: str | list[str]
    institution: str = Field(min_length=1)
    created: str
    access_url: str
    language: str | None = None
    subjects: list[str] | None = None
    description: str | None = None
    source: str | None = None
    rights: str | None = None
    place: str | list[str] | None = None

    @property
    def creators(self) -> list[str]:
        return list(self.creator) if isinstance(self.creator, list) else [self.creator]

    @property
    def places(self) -> list[str]:
        if self.place is None:
            return []
        return list(self.place) if isinstance(self.place, list) else [self.place]


class RefDescriptor(BaseModel):
    """
    Descriptor of a binary file held on the CDN (a ``*.ref.json`` component).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str
    ipfs_cid: str
    type: str
    size: int = 0
    filename: str
    ocr: str | None = None


class GraphEntity(BaseModel):
    """
    One typed node of a relationship graph.

    Property values are either plain strings or ``{"type": "entity_ref",
    "code": ...}`` references to another entity of the same graph.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    label: str = ""
    properties: dict[str, Any] = Field(default_factory=dict)
    source: str | None = None

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_default(cls, value: Any) -> Any:
        return {} if value is None else value


class GraphRelation(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    source: str
    target: str
    type: str
    properties: dict[str, Any] = Field(default_factory=dict)


class RelationshipGraph(BaseModel):
    """
    Auxiliary graph of typed entities and directed relations scoped to one entity.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    entities: dict[str, GraphEntity] = Field(default_factory=dict)
    relations: list[GraphRelation] = Field(default_factory=list)

    @field_validator("relations", mode="before")
    @classmethod
    def _relations_default(cls, value: Any) -> Any:
        return [] if value is None else value

    def merged_with(self, other: "RelationshipGraph | None") -> "RelationshipGraph":
        """
        Union of two graphs; entities already present in ``self`` win on code collisions.
        """

        if other is None:
            return self
        entities = dict(other.entities)
        entities.update(self.entities)
        return RelationshipGraph(entities=entities, relations=[*self.relations, *other.relations])


class LinkedEntity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    canonical_id: str
    code: str
    label: str = ""
    entity_type: str
    properties: dict[str, Any] | None = None
    created_by_pi: str | None = None
    source_pis: list[str] | None = None
    first_seen: str | None = None
    last_updated: str | None = None


class LinkedRelationship(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    subject_id: str
    predicate: str
    object_id: str
    subject_label: str | None = None
    object_label: str | None = None
    source_pi: str | None = None
    properties: dict[str, Any] | None = None
    created_at: str | None = None


class LinkedEntities(BaseModel):
    """
    Graph database answer for ``/api/pi/{pi}/entities-with-relationships``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    entities: list[LinkedEntity] = Field(default_factory=list)
    relationships: list[LinkedRelationship] = Field(default_factory=list)

    def to_graph(self) -> RelationshipGraph:
        """
        Re-key linked entities by code so the graph annotator handles both sources.
        """

        code_by_canonical_id = {entity.canonical_id: entity.code for entity in self.entities}
        entities = {
            entity.code: GraphEntity(
                type=entity.entity_type,
                label=entity.label,
                properties={
                    key: value
                    for key, value in (entity.properties or {}).items()
                    if isinstance(value, str)
                },
                source="graphdb",
            )
            for entity in self.entities
        }
        relations = [
            GraphRelation(
                source=code_by_canonical_id[relationship.subject_id],
                target=code_by_canonical_id[relationship.object_id],
                type=relationship.predicate,
            )
            for relationship in self.relationships
            if relationship.subject_id in code_by_canonical_id
            and relationship.object_id in code_by_canonical_id
        ]
        return RelationshipGraph(entities=entities, relations=relations)
