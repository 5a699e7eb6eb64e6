"""
app/domain/mods.py

Normalized bibliographic document (MODS) as fixed, immutable records.

Optional scalar fields use ``None`` for absence and sequence fields use an
empty tuple; the XML generator omits exactly those two cases.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable


@dataclass(frozen=True)
class TitleInfo:
    title: str
    type: str | None = None
    display_label: str | None = None
    sub_title: str | None = None


@dataclass(frozen=True)
class Role:
    term: str
    type: str = "text"
    authority: str | None = None


@dataclass(frozen=True)
class Name:
    """
    Personal or corporate name. ``is_subject`` marks names describing what the
    resource is about, as opposed to creators or holding institutions.
    """

    name_type: str
    parts: tuple[str, ...]
    roles: tuple[Role, ...] = ()
    display_form: str | None = None
    is_subject: bool = False


@dataclass(frozen=True)
class OriginInfo:
    date_created: str | None = None
    encoding: str | None = None
    key_date: bool = False
    places: tuple[str, ...] = ()
    publisher: str | None = None
    date_issued: str | None = None


@dataclass(frozen=True)
class LanguageTerm:
    code: str
    type: str = "code"
    authority: str = "iso639-2b"


@dataclass(frozen=True)
class Note:
    text: str
    type: str | None = None
    display_label: str | None = None


@dataclass(frozen=True)
class Subject:
    topics: tuple[str, ...] = ()
    geographic: tuple[str, ...] = ()
    temporal: tuple[str, ...] = ()
    names: tuple[Name, ...] = ()
    authority: str | None = None


@dataclass(frozen=True)
class Identifier:
    value: str
    type: str
    display_label: str | None = None


@dataclass(frozen=True)
class LocationUrl:
    url: str
    usage: str | None = None
    access: str | None = None
    display_label: str | None = None


@dataclass(frozen=True)
class Location:
    physical_location: str | None = None
    urls: tuple[LocationUrl, ...] = ()


@dataclass(frozen=True)
class AccessCondition:
    text: str
    type: str = "use and reproduction"


@dataclass(frozen=True)
class PhysicalDescription:
    internet_media_type: str | None = None
    extent: str | None = None
    form: str | None = None
    digital_origin: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class RelatedItem:
    type: str
    display_label: str | None = None
    title: TitleInfo | None = None
    identifiers: tuple[Identifier, ...] = ()
    location: Location | None = None
    physical_description: PhysicalDescription | None = None
    notes: tuple[Note, ...] = ()


@dataclass(frozen=True)
class RecordInfo:
    content_source: str | None = None
    identifier: str | None = None
    identifier_source: str | None = None
    creation_date: str | None = None
    change_date: str | None = None
    origin: str | None = None
    description_standard: str | None = None


@dataclass(frozen=True)
class ModsDocument:
    """
    One normalized record per visited entity.
    """

    titles: tuple[TitleInfo, ...]
    record_info: RecordInfo
    names: tuple[Name, ...] = ()
    type_of_resource: str | None = None
    genres: tuple[str, ...] = ()
    origin_info: OriginInfo | None = None
    languages: tuple[LanguageTerm, ...] = ()
    physical_description: PhysicalDescription | None = None
    abstract: str | None = None
    notes: tuple[Note, ...] = ()
    subjects: tuple[Subject, ...] = ()
    related_items: tuple[RelatedItem, ...] = ()
    identifiers: tuple[Identifier, ...] = ()
    location: Location | None = None
    access_conditions: tuple[AccessCondition, ...] = ()

    def with_additions(
        self,
        *,
        subjects: Iterable[Subject] = (),
        notes: Iterable[Note] = (),
        related_items: Iterable[RelatedItem] = (),
    ) -> "ModsDocument":
        """
        Return a copy with entries appended after the existing ones.
        """

        return replace(
            self,
            subjects=(*self.subjects, *subjects),
            notes=(*self.notes, *notes),
            related_items=(*self.related_items, *related_items),
        )
