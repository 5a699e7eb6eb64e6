"""
app/mappers/graph_annotator.py

Relationship graph to MODS subject, name and note entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.domain.mods import Name, Note, Subject
from app.schemas.arke import RelationshipGraph

GRAPH_MODE_FULL = "full"
GRAPH_MODE_MINIMAL = "minimal"
GRAPH_MODE_SKIP = "skip"

ENTITY_REF_TYPE = "entity_ref"
EXCLUDED_PROPERTY_KEYS = frozenset({"description"})


@dataclass(frozen=True)
class AnnotationResult:
    subjects: tuple[Subject, ...] = ()
    names: tuple[Name, ...] = ()
    notes: tuple[Note, ...] = ()

    def name_subjects(self) -> tuple[Subject, ...]:
        """
        Wrap each subject name in its own subject entry, as MODS requires.
        """

        return tuple(Subject(names=(name,)) for name in self.names)


@dataclass(frozen=True)
class _ResolvedEntity:
    code: str
    type: str
    label: str
    properties: dict[str, str]


def _resolve_properties(raw: dict[str, Any], graph: RelationshipGraph) -> dict[str, str]:
    """
    Replace one level of ``entity_ref`` indirection with the target's label.

    Unresolved references keep the raw code. Non-string, non-reference values are dropped.
    """

    resolved: dict[str, str] = {}
    for key, value in raw.items():
        if isinstance(value, dict) and value.get("type") == ENTITY_REF_TYPE:
            code = str(value.get("code", ""))
            target = graph.entities.get(code)
            resolved[key] = target.label if target is not None and target.label else code
        elif isinstance(value, str):
            resolved[key] = value
    return resolved


def annotate(graph: RelationshipGraph | None, mode: str) -> AnnotationResult:
    """
    Extract subjects, subject names and notes from ``graph``.

    ``skip`` yields nothing. ``minimal`` keeps the typed entities only;
    ``full`` adds generic topics for other labelled entities, one note per
    remaining string property and one note per fully resolved relation.
    """

    if graph is None or mode == GRAPH_MODE_SKIP:
        return AnnotationResult()

    full = mode == GRAPH_MODE_FULL
    resolved = {
        code: _ResolvedEntity(
            code=code,
            type=entity.type,
            label=entity.label,
            properties=_resolve_properties(entity.properties, graph),
        )
        for code, entity in graph.entities.items()
    }

    subjects: list[Subject] = []
    names: list[Name] = []
    notes: list[Note] = []

    for entity in resolved.values():
        if entity.type == "person":
            names.append(Name(name_type="personal", parts=(entity.label,), is_subject=True))
        elif entity.type == "organization":
            names.append(Name(name_type="corporate", parts=(entity.label,), is_subject=True))
        elif entity.type == "place":
            subjects.append(Subject(geographic=(entity.label,)))
        elif entity.type == "concept":
            subjects.append(Subject(topics=(entity.label,)))
        elif entity.type == "date":
            subjects.append(Subject(temporal=(entity.label,)))
        elif entity.type == "document":
            # Documents are linked as related items, not subjects.
            pass
        elif full and entity.label:
            subjects.append(Subject(topics=(entity.label,)))

        if full:
            notes.extend(
                Note(
                    text=f"{entity.label} • {key}: {value}",
                    type="cheimarros-property",
                    display_label="Graph Property",
                )
                for key, value in entity.properties.items()
                if key not in EXCLUDED_PROPERTY_KEYS
            )

    if full:
        for relation in graph.relations:
            source = resolved.get(relation.source)
            target = resolved.get(relation.target)
            if source is None or target is None:
                continue
            notes.append(
                Note(
                    text=f"{source.label} → {relation.type} → {target.label}",
                    type="cheimarros-relation",
                    display_label="Graph Relation",
                )
            )

    return AnnotationResult(subjects=tuple(subjects), names=tuple(names), notes=tuple(notes))
