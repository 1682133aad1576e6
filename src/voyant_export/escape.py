# ABOUTME: XML escaping for record text written into metadata documents
# ABOUTME: Maps the five XML special characters to named entities and drops code points XML cannot carry
"""XML text escaping"""

import re

_ENTITIES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    '"': "&quot;",
    "'": "&apos;",
}

_REVERSE = {entity: char for char, entity in _ENTITIES.items()}

_SPECIAL_RE = re.compile(r"[<>&\"']")
_ENTITY_RE = re.compile(r"&(?:lt|gt|amp|quot|apos);")


def escape(text: str) -> str:
    """Escape text for use in XML element content or attribute values.

    Every source character maps to a distinct entity and no entity contains a
    special character other than its own leading ``&``, so one left-to-right
    pass is enough.

    Args:
        text: Raw text (any value is coerced with ``str``)

    Returns:
        XML-safe text
    """
    return _SPECIAL_RE.sub(lambda m: _ENTITIES[m.group(0)], str(text))


def unescape(text: str) -> str:
    """Reverse :func:`escape` for the five entities it produces."""
    return _ENTITY_RE.sub(lambda m: _REVERSE[m.group(0)], text)


# Everything outside the XML 1.0 Char production
_INVALID_XML_RE = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def strip_invalid(text: str) -> str:
    """Drop code points XML 1.0 cannot carry, such as form feeds and other C0 controls."""
    return _INVALID_XML_RE.sub("", str(text))
