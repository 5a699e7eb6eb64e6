"""
app/mappers/crosswalk.py

Source metadata record to MODS document crosswalk.

The mapping is pure: given the same record, manifest, description and clock
it always builds the same ``ModsDocument``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, TypeGuard

from app.config import ArkeSettings
from app.domain.mods import (
    AccessCondition,
    Identifier,
    LanguageTerm,
    Location,
    LocationUrl,
    ModsDocument,
    Name,
    Note,
    OriginInfo,
    RecordInfo,
    Role,
    Subject,
    TitleInfo,
)
from app.schemas.arke import EntityManifest, SourceMetadataRecord

DEFAULT_RESOURCE_TYPE = "text"

RESOURCE_TYPE_MAP: dict[str, str] = {
    "Text": "text",
    "Image": "still image",
    "StillImage": "still image",
    "MovingImage": "moving image",
    "Sound": "sound recording",
    "Dataset": "software, multimedia",
    "InteractiveResource": "software, multimedia",
    "Software": "software, multimedia",
    "Collection": "mixed material",
    "PhysicalObject": "three dimensional object",
    "Event": "text",
    "Service": "text",
}

LANGUAGE_CODE_MAP: dict[str, str] = {
    "en": "eng",
    "en-US": "eng",
    "en-GB": "eng",
    "es": "spa",
    "es-MX": "spa",
    "fr": "fre",
    "de": "ger",
    "it": "ita",
    "pt": "por",
    "zh": "chi",
    "ja": "jpn",
    "ar": "ara",
    "ru": "rus",
}

ACCESS_URL_PLACEHOLDER = "PLACEHOLDER"
RECORD_CONTENT_SOURCE = "Arke Institute"
DESCRIPTION_STANDARD = "pinax"
INCOMPLETE_TITLE_PREFIX = "[Incomplete Record]"
DEGRADED_ORIGIN = "Generated via graceful degradation: primary metadata (pinax.json) was unavailable"


def _has_text(value: str | None) -> TypeGuard[str]:
    """
    A field is present when it holds at least one non-whitespace character.
    """

    return value is not None and value.strip() != ""


def map_resource_type(source_type: str | None) -> str:
    if source_type is None:
        return DEFAULT_RESOURCE_TYPE
    return RESOURCE_TYPE_MAP.get(source_type, DEFAULT_RESOURCE_TYPE)


def map_language(tag: str | None) -> str | None:
    """
    Downgrade a BCP-47 tag to an ISO 639-2/B code.

    Unlisted tags fall back to their first three characters, which can yield
    a plausible but wrong code (``"nl-BE"`` becomes ``"nl-"``).
    """

    if not _has_text(tag):
        return None
    return LANGUAGE_CODE_MAP.get(tag, tag[:3])


class PinaxModsCrosswalk:
    """
    Build MODS documents from primary metadata, or a degraded record without it.
    """

    def __init__(
        self,
        settings: ArkeSettings,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def crosswalk(
        self,
        record: SourceMetadataRecord,
        manifest: EntityManifest,
        description: str | None = None,
    ) -> ModsDocument:
        abstract = description if _has_text(description) else record.description
        return ModsDocument(
            titles=(TitleInfo(title=record.title),),
            names=self._map_names(record),
            type_of_resource=map_resource_type(record.type),
            origin_info=OriginInfo(date_created=record.created, encoding="w3cdtf", key_date=True),
            languages=self._map_languages(record),
            abstract=abstract if _has_text(abstract) else None,
            notes=self._map_notes(record, manifest, description),
            subjects=self._map_subjects(record),
            identifiers=self._map_identifiers(record, manifest),
            location=self._map_location(record, manifest),
            access_conditions=self._map_access_conditions(record),
            record_info=RecordInfo(
                content_source=RECORD_CONTENT_SOURCE,
                identifier=manifest.pi,
                identifier_source="arke-pi",
                creation_date=manifest.ts,
                description_standard=DESCRIPTION_STANDARD,
            ),
        )

    def degraded(self, manifest: EntityManifest, reason: str | None = None) -> ModsDocument:
        """
        Minimal but well-formed document for an entity without primary metadata.
        """

        cause = reason if _has_text(reason) else "pinax.json component is missing"
        exported_at = self._clock().isoformat()
        return ModsDocument(
            titles=(TitleInfo(title=f"{INCOMPLETE_TITLE_PREFIX} {manifest.pi}", type="alternative"),),
            notes=(
                Note(
                    text=(
                        "This record is incomplete: the entity has no usable primary metadata "
                        f"({cause}). Only structural information is available."
                    ),
                    type="incomplete",
                    display_label="Incomplete Record",
                ),
                Note(
                    text=(
                        f"Add a valid pinax.json component to entity {manifest.pi} and re-run "
                        "the export to produce a full record."
                    ),
                    type="remediation",
                    display_label="Remediation",
                ),
            ),
            identifiers=(
                Identifier(value=manifest.pi, type="arke-pi", display_label="Arke Persistent Identifier"),
                Identifier(value=manifest.manifest_cid, type="ipfs-cid", display_label="Manifest CID"),
            ),
            location=Location(
                urls=(
                    LocationUrl(
                        url=self._settings.ipfs_url(manifest.manifest_cid),
                        display_label="IPFS Manifest",
                    ),
                ),
            ),
            record_info=RecordInfo(
                content_source=RECORD_CONTENT_SOURCE,
                identifier=manifest.pi,
                identifier_source="arke-pi",
                creation_date=exported_at,
                origin=DEGRADED_ORIGIN,
            ),
        )

    # ------------------------------------------------------------------
    # Field mappers
    # ------------------------------------------------------------------

    def _access_url(self, record: SourceMetadataRecord, manifest: EntityManifest) -> str:
        if record.access_url == ACCESS_URL_PLACEHOLDER or not _has_text(record.access_url):
            return self._settings.web_url_for(manifest.pi)
        return record.access_url

    @staticmethod
    def _map_names(record: SourceMetadataRecord) -> tuple[Name, ...]:
        names = [
            Name(name_type="personal", parts=(creator,), roles=(Role(term="creator"),))
            for creator in record.creators
            if _has_text(creator)
        ]
        names.append(
            Name(name_type="corporate", parts=(record.institution,), roles=(Role(term="repository"),))
        )
        return tuple(names)

    @staticmethod
    def _map_languages(record: SourceMetadataRecord) -> tuple[LanguageTerm, ...]:
        code = map_language(record.language)
        if code is None:
            return ()
        return (LanguageTerm(code=code),)

    @staticmethod
    def _map_subjects(record: SourceMetadataRecord) -> tuple[Subject, ...]:
        topical = [Subject(topics=(topic,)) for topic in record.subjects or [] if _has_text(topic)]
        geographic = [Subject(geographic=(place,)) for place in record.places if _has_text(place)]
        return (*topical, *geographic)

    def _map_identifiers(
        self,
        record: SourceMetadataRecord,
        manifest: EntityManifest,
    ) -> tuple[Identifier, ...]:
        return (
            Identifier(value=record.id, type="local", display_label="PINAX ID"),
            Identifier(value=manifest.pi, type="arke-pi", display_label="Arke Persistent Identifier"),
            Identifier(value=self._access_url(record, manifest), type="uri", display_label="Arke URI"),
        )

    def _map_location(self, record: SourceMetadataRecord, manifest: EntityManifest) -> Location:
        return Location(
            physical_location=record.institution,
            urls=(
                LocationUrl(
                    url=self._access_url(record, manifest),
                    usage="primary display",
                    access="object in context",
                    display_label="View in Arke",
                ),
                LocationUrl(
                    url=self._settings.ipfs_url(manifest.manifest_cid),
                    display_label="IPFS Manifest",
                ),
            ),
        )

    @staticmethod
    def _map_access_conditions(record: SourceMetadataRecord) -> tuple[AccessCondition, ...]:
        rights = record.rights
        if not _has_text(rights):
            return ()
        return (AccessCondition(text=rights),)

    @staticmethod
    def _map_notes(
        record: SourceMetadataRecord,
        manifest: EntityManifest,
        description: str | None,
    ) -> tuple[Note, ...]:
        notes = [
            Note(
                text=f"Version {manifest.ver} • Manifest CID: {manifest.manifest_cid}",
                type="version",
                display_label="Arke Version",
            )
        ]
        summary = record.description
        if _has_text(description) and _has_text(summary) and description != summary:
            notes.append(Note(text=summary, type="summary", display_label="PINAX Description"))
        source = record.source
        if _has_text(source):
            notes.append(Note(text=source, type="source", display_label="Source System"))
        return tuple(notes)
