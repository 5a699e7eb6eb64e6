"""
MODS 3.8 XML rendering of ``ModsDocument`` records.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from app.domain.mods import (
    Identifier,
    Location,
    ModsDocument,
    Name,
    Note,
    OriginInfo,
    PhysicalDescription,
    RecordInfo,
    RelatedItem,
    Subject,
    TitleInfo,
)
from app.exporting.text_utils import strip_invalid_xml_chars

MODS_NS = "http://www.loc.gov/mods/v3"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
MODS_SCHEMA_LOCATION = f"{MODS_NS} https://www.loc.gov/standards/mods/mods-3-8.xsd"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

ET.register_namespace("", MODS_NS)
ET.register_namespace("xsi", XSI_NS)


def qname(local_name: str) -> str:
    return f"{{{MODS_NS}}}{local_name}"


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attributes: str | None) -> ET.Element:
    """
    Append a MODS child element. Attributes whose value is ``None`` are omitted;
    text and attribute values lose characters XML 1.0 cannot carry.
    """

    element = ET.SubElement(
        parent,
        qname(tag),
        {key: strip_invalid_xml_chars(value) for key, value in attributes.items() if value is not None},
    )
    if text is not None:
        element.text = strip_invalid_xml_chars(text)
    return element


def _add_title(parent: ET.Element, title: TitleInfo) -> None:
    element = _sub(parent, "titleInfo", type=title.type, displayLabel=title.display_label)
    _sub(element, "title", title.title)
    if title.sub_title is not None:
        _sub(element, "subTitle", title.sub_title)


def _add_name(parent: ET.Element, name: Name) -> None:
    element = _sub(parent, "name", type=name.name_type)
    for part in name.parts:
        _sub(element, "namePart", part)
    if name.display_form is not None:
        _sub(element, "displayForm", name.display_form)
    for role in name.roles:
        role_element = _sub(element, "role")
        _sub(role_element, "roleTerm", role.term, type=role.type, authority=role.authority)


def _add_origin_info(parent: ET.Element, origin: OriginInfo) -> None:
    element = _sub(parent, "originInfo")
    for place in origin.places:
        place_element = _sub(element, "place")
        _sub(place_element, "placeTerm", place, type="text")
    if origin.publisher is not None:
        _sub(element, "publisher", origin.publisher)
    if origin.date_created is not None:
        _sub(
            element,
            "dateCreated",
            origin.date_created,
            encoding=origin.encoding,
            keyDate="yes" if origin.key_date else None,
        )
    if origin.date_issued is not None:
        _sub(element, "dateIssued", origin.date_issued)


def _add_physical_description(parent: ET.Element, description: PhysicalDescription) -> None:
    element = _sub(parent, "physicalDescription")
    if description.form is not None:
        _sub(element, "form", description.form)
    if description.extent is not None:
        _sub(element, "extent", description.extent)
    if description.internet_media_type is not None:
        _sub(element, "internetMediaType", description.internet_media_type)
    if description.digital_origin is not None:
        _sub(element, "digitalOrigin", description.digital_origin)
    if description.note is not None:
        _sub(element, "note", description.note)


def _add_note(parent: ET.Element, note: Note) -> None:
    _sub(parent, "note", note.text, type=note.type, displayLabel=note.display_label)


def _add_subject(parent: ET.Element, subject: Subject) -> None:
    element = _sub(parent, "subject", authority=subject.authority)
    for topic in subject.topics:
        _sub(element, "topic", topic)
    for place in subject.geographic:
        _sub(element, "geographic", place)
    for period in subject.temporal:
        _sub(element, "temporal", period)
    for name in subject.names:
        _add_name(element, name)


def _add_identifier(parent: ET.Element, identifier: Identifier) -> None:
    _sub(parent, "identifier", identifier.value, type=identifier.type, displayLabel=identifier.display_label)


def _add_location(parent: ET.Element, location: Location) -> None:
    element = _sub(parent, "location")
    if location.physical_location is not None:
        _sub(element, "physicalLocation", location.physical_location)
    for url in location.urls:
        _sub(
            element,
            "url",
            url.url,
            usage=url.usage,
            access=url.access,
            displayLabel=url.display_label,
        )


def _add_related_item(parent: ET.Element, item: RelatedItem) -> None:
    element = _sub(parent, "relatedItem", type=item.type, displayLabel=item.display_label)
    if item.title is not None:
        _add_title(element, item.title)
    for identifier in item.identifiers:
        _add_identifier(element, identifier)
    if item.location is not None:
        _add_location(element, item.location)
    if item.physical_description is not None:
        _add_physical_description(element, item.physical_description)
    for note in item.notes:
        _add_note(element, note)


def _add_record_info(parent: ET.Element, info: RecordInfo) -> None:
    element = _sub(parent, "recordInfo")
    if info.content_source is not None:
        _sub(element, "recordContentSource", info.content_source)
    if info.identifier is not None:
        _sub(element, "recordIdentifier", info.identifier, source=info.identifier_source)
    if info.creation_date is not None:
        _sub(element, "recordCreationDate", info.creation_date, encoding="w3cdtf")
    if info.change_date is not None:
        _sub(element, "recordChangeDate", info.change_date, encoding="w3cdtf")
    if info.origin is not None:
        _sub(element, "recordOrigin", info.origin)
    if info.description_standard is not None:
        _sub(element, "descriptionStandard", info.description_standard)


def render_element(document: ModsDocument) -> ET.Element:
    """
    Build the ``<mods>`` element.

    Top-level elements follow a fixed order; ``None`` scalars and empty
    tuples are omitted, every other value is emitted as given.
    """

    root = ET.Element(qname("mods"), {f"{{{XSI_NS}}}schemaLocation": MODS_SCHEMA_LOCATION})
    for title in document.titles:
        _add_title(root, title)
    for name in document.names:
        _add_name(root, name)
    if document.type_of_resource is not None:
        _sub(root, "typeOfResource", document.type_of_resource)
    for genre in document.genres:
        _sub(root, "genre", genre)
    if document.origin_info is not None:
        _add_origin_info(root, document.origin_info)
    for language in document.languages:
        language_element = _sub(root, "language")
        _sub(language_element, "languageTerm", language.code, type=language.type, authority=language.authority)
    if document.physical_description is not None:
        _add_physical_description(root, document.physical_description)
    if document.abstract is not None:
        _sub(root, "abstract", document.abstract)
    for note in document.notes:
        _add_note(root, note)
    for subject in document.subjects:
        _add_subject(root, subject)
    for item in document.related_items:
        _add_related_item(root, item)
    for identifier in document.identifiers:
        _add_identifier(root, identifier)
    if document.location is not None:
        _add_location(root, document.location)
    for condition in document.access_conditions:
        _sub(root, "accessCondition", condition.text, type=condition.type)
    _add_record_info(root, document.record_info)
    return root


def render(document: ModsDocument) -> str:
    """
    Render a standalone MODS document including the XML declaration.
    """

    root = render_element(document)
    ET.indent(root, space="  ")
    return f"{XML_DECLARATION}\n{ET.tostring(root, encoding='unicode')}\n"
