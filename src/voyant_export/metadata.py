# ABOUTME: Builds the MODS and Dublin Core metadata documents for one record
# ABOUTME: Small element tree with a serializer that escapes every text and attribute value
"""Metadata document generation (MODS and OAI Dublin Core)"""

from dataclasses import dataclass, field

from voyant_export.escape import escape, strip_invalid
from voyant_export.exceptions import MetadataError
from voyant_export.models import Record

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

MODS_NS = "http://www.loc.gov/mods/v3"
MODS_ROOT_ATTRIBUTES = {
    "xmlns": MODS_NS,
    "xmlns:mods": MODS_NS,
    "xmlns:xsi": XSI_NS,
    "xmlns:xlink": "http://www.w3.org/1999/xlink",
    "xsi:schemaLocation": f"{MODS_NS} http://www.loc.gov/standards/mods/mods.xsd",
}

OAI_DC_NS = "http://www.openarchives.org/OAI/2.0/oai_dc/"
DC_NS = "http://purl.org/dc/elements/1.1/"
DC_ROOT_ATTRIBUTES = {
    "xmlns:oai_dc": OAI_DC_NS,
    "xmlns:dc": DC_NS,
    "xmlns:xsi": XSI_NS,
    "xsi:schemaLocation": f"{OAI_DC_NS} http://www.openarchives.org/OAI/2.0/oai_dc.xsd",
}

# Catalog item types mapped to DCMI Type vocabulary terms
DC_TYPE_MAP = {
    "book": "Text",
    "journalArticle": "Text",
    "conferencePaper": "Text",
    "thesis": "Text",
    "webpage": "InteractiveResource",
    "film": "MovingImage",
    "audioRecording": "Sound",
    "artwork": "Image",
}
DEFAULT_DC_TYPE = "Text"

# Roles that fill the dc:creator slot; everything else is a contributor
DC_CREATOR_ROLES = frozenset({"author", "creator"})


@dataclass
class Element:
    """One XML element. Text and attribute values are stored raw."""

    tag: str
    text: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    children: list["Element"] = field(default_factory=list)

    def append(
        self, tag: str, text: str | None = None, attributes: dict[str, str] | None = None
    ) -> "Element":
        child = Element(tag=tag, text=text, attributes=dict(attributes or {}))
        self.children.append(child)
        return child

    def render(self, lines: list[str], depth: int = 0) -> None:
        indent = "  " * depth
        attrs = "".join(
            f' {name}="{escape(strip_invalid(value))}"' for name, value in self.attributes.items()
        )
        if self.children:
            lines.append(f"{indent}<{self.tag}{attrs}>")
            for child in self.children:
                child.render(lines, depth + 1)
            lines.append(f"{indent}</{self.tag}>")
        elif self.text is not None:
            lines.append(f"{indent}<{self.tag}{attrs}>{escape(strip_invalid(self.text))}</{self.tag}>")
        else:
            lines.append(f"{indent}<{self.tag}{attrs}/>")


@dataclass
class MetadataDocument:
    """An in-memory metadata document rooted at a schema's fixed root element."""

    schema: str
    root: Element

    def serialize(self) -> str:
        """Serialize to XML text, starting with the XML declaration."""
        lines = [XML_DECLARATION]
        self.root.render(lines)
        return "\n".join(lines)

    def to_bytes(self) -> bytes:
        return self.serialize().encode("utf-8")


def _validate(record: Record | None, schema: str) -> Record:
    if record is None:
        raise MetadataError(f"Cannot generate {schema}: record is null")
    if not isinstance(record, Record):
        raise MetadataError(
            f"Cannot generate {schema}: expected Record, got {type(record).__name__}"
        )
    for position, creator in enumerate(record.creators, start=1):
        if not creator.family_name or not creator.family_name.strip():
            raise MetadataError(
                f"Cannot generate {schema} for record {record.id}: "
                f"creator {position} has no family name",
                recovery_hint="Fix the creator's last name in the source catalog",
            )
    return record


def _present(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def generate_rich(record: Record) -> MetadataDocument:
    """Build the MODS document for a record.

    Child order is fixed: titleInfo, name blocks (source order), originInfo,
    abstract, typeOfResource. Each block appears only when the record has
    the data for it.

    Raises:
        MetadataError: If the record is missing or structurally invalid
    """
    record = _validate(record, "MODS")
    mods = Element("mods", attributes=MODS_ROOT_ATTRIBUTES)

    if record.title.strip():
        title_info = mods.append("titleInfo")
        title_info.append("title", record.title)

    for creator in record.creators:
        name = mods.append("name", attributes={"type": "personal"})
        name.append("namePart", creator.full_name)
        if creator.role:
            role = name.append("role")
            role.append("roleTerm", creator.role, attributes={"type": "text"})

    if _present(record.date):
        origin_info = mods.append("originInfo")
        origin_info.append("dateIssued", record.date)

    if _present(record.abstract_text):
        mods.append("abstract", record.abstract_text)

    if _present(record.item_type):
        mods.append("typeOfResource", record.item_type)

    return MetadataDocument(schema="MODS", root=mods)


def dc_type_for(item_type: str | None) -> str:
    """Map a catalog item type onto one of the coarse DCMI types."""
    if item_type is None:
        return DEFAULT_DC_TYPE
    return DC_TYPE_MAP.get(item_type, DEFAULT_DC_TYPE)


def generate_simple(record: Record) -> MetadataDocument:
    """Build the OAI Dublin Core document for a record.

    The identifier is always emitted and must be non-empty; dc:type is always
    emitted, falling back to ``Text``.

    Raises:
        MetadataError: If the record is missing, has no identifier or has an
            invalid creator
    """
    record = _validate(record, "Dublin Core")
    if not record.id or not str(record.id).strip():
        raise MetadataError(
            "Cannot generate Dublin Core: record has no identifier",
            recovery_hint="Every exported record needs a stable id",
        )

    dc = Element("oai_dc:dc", attributes=DC_ROOT_ATTRIBUTES)
    dc.append("dc:identifier", str(record.id))

    if record.title.strip():
        dc.append("dc:title", record.title)

    for creator in record.creators:
        tag = "dc:creator" if creator.role in DC_CREATOR_ROLES else "dc:contributor"
        dc.append(tag, creator.full_name)

    if _present(record.date):
        dc.append("dc:date", record.date)
    if _present(record.abstract_text):
        dc.append("dc:description", record.abstract_text)

    dc.append("dc:type", dc_type_for(record.item_type))

    if _present(record.publisher):
        dc.append("dc:publisher", record.publisher)
    if _present(record.language):
        dc.append("dc:language", record.language)

    for tag in record.tags:
        if tag:
            dc.append("dc:subject", tag)

    if _present(record.rights):
        dc.append("dc:rights", record.rights)

    return MetadataDocument(schema="Dublin Core", root=dc)
