"""
app/mappers/component_linker.py

Cross-reference entries for an entity's files, parent and children.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from app.config import ArkeSettings, ExportOptions
from app.domain.mods import (
    Identifier,
    Location,
    LocationUrl,
    Note,
    PhysicalDescription,
    RelatedItem,
)
from app.exporting.text_utils import truncate_text
from app.schemas.arke import REF_COMPONENT_SUFFIX, EntityManifest, RefDescriptor

METADATA_COMPONENTS = frozenset(
    {
        "pinax.json",
        "description.md",
        "cheimarros.json",
        "cheimarros-raw.txt",
        "reorganization-description.txt",
    }
)


@dataclass(frozen=True)
class LinkResult:
    related_items: tuple[RelatedItem, ...] = ()
    notes: tuple[Note, ...] = ()


class ComponentLinker:
    """
    Builds ``relatedItem`` entries grouped as ``ref``, ``parent``, ``children`` and ``other``.

    Only the groups listed in ``options.component_types`` are emitted. The
    component inventory note is always added.
    """

    def __init__(self, settings: ArkeSettings, options: ExportOptions) -> None:
        self._settings = settings
        self._options = options

    def link(
        self,
        manifest: EntityManifest,
        ref_descriptors: Mapping[str, RefDescriptor],
    ) -> LinkResult:
        enabled = set(self._options.component_types)
        items: list[RelatedItem] = []
        notes: list[Note] = []

        if "ref" in enabled:
            items.extend(self.link_ref_components(ref_descriptors))
        if "parent" in enabled:
            parent = self.link_parent(manifest)
            if parent is not None:
                items.append(parent)
        if "children" in enabled:
            items.extend(self.link_children(manifest))
            child_note = self.child_inventory_note(manifest)
            if child_note is not None:
                notes.append(child_note)
        if "other" in enabled:
            items.extend(self.link_other_components(manifest))
        notes.append(self.component_inventory_note(manifest))

        return LinkResult(related_items=tuple(items), notes=tuple(notes))

    def link_ref_components(self, ref_descriptors: Mapping[str, RefDescriptor]) -> list[RelatedItem]:
        return [self._ref_item(descriptor) for descriptor in ref_descriptors.values()]

    def _ref_item(self, descriptor: RefDescriptor) -> RelatedItem:
        notes: tuple[Note, ...] = ()
        if self._options.include_ocr and descriptor.ocr:
            ocr = truncate_text(descriptor.ocr, self._options.max_text_length)
            notes = (Note(text=ocr.text, type="ocr", display_label="OCR Text"),)
        return RelatedItem(
            type="constituent",
            display_label=descriptor.filename,
            identifiers=(
                Identifier(value=descriptor.url, type="uri", display_label="CDN URL"),
                Identifier(
                    value=descriptor.ipfs_cid,
                    type="ipfs-cid",
                    display_label="IPFS CID (reference only - content stored on CDN)",
                ),
            ),
            physical_description=PhysicalDescription(
                internet_media_type=descriptor.type,
                extent=f"{descriptor.size} bytes",
            ),
            notes=notes,
        )

    def link_parent(self, manifest: EntityManifest) -> RelatedItem | None:
        if not manifest.parent_pi:
            return None
        return RelatedItem(
            type="host",
            display_label="Parent Entity",
            identifiers=(Identifier(value=manifest.parent_pi, type="arke-pi", display_label="Parent PI"),),
            location=Location(
                urls=(
                    LocationUrl(
                        url=self._settings.web_url_for(manifest.parent_pi),
                        display_label="View Parent in Arke",
                    ),
                ),
            ),
        )

    def link_children(self, manifest: EntityManifest) -> list[RelatedItem]:
        return [
            RelatedItem(
                type="constituent",
                display_label=f"Child Entity {index}",
                identifiers=(Identifier(value=child_pi, type="arke-pi", display_label="Child PI"),),
                location=Location(
                    urls=(
                        LocationUrl(
                            url=self._settings.web_url_for(child_pi),
                            display_label="View Child in Arke",
                        ),
                    ),
                ),
            )
            for index, child_pi in enumerate(manifest.children_pi, start=1)
        ]

    def link_other_components(self, manifest: EntityManifest) -> list[RelatedItem]:
        items: list[RelatedItem] = []
        for key, cid in manifest.components.items():
            if key in METADATA_COMPONENTS or key.endswith(REF_COMPONENT_SUFFIX):
                continue
            items.append(
                RelatedItem(
                    type="constituent",
                    display_label=key,
                    identifiers=(
                        Identifier(value=cid, type="ipfs-cid", display_label="IPFS CID"),
                        Identifier(value=self._settings.ipfs_url(cid), type="uri", display_label="IPFS Gateway URL"),
                        Identifier(value=self._settings.cat_url(cid), type="uri", display_label="API URL"),
                    ),
                )
            )
        return items

    @staticmethod
    def child_inventory_note(manifest: EntityManifest) -> Note | None:
        if not manifest.children_pi:
            return None
        return Note(
            text=f"{len(manifest.children_pi)} child entities",
            type="children-inventory",
            display_label="Child Entities",
        )

    @staticmethod
    def component_inventory_note(manifest: EntityManifest) -> Note:
        keys = sorted(manifest.components)
        lines = "\n".join(keys)
        return Note(
            text=f"Component inventory ({len(keys)} files):\n{lines}",
            type="component-inventory",
            display_label="Component Files",
        )
