import re

# XML 1.0 forbids these control characters; tab, LF and CR are allowed.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

_XML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


def sanitize_cdata(content: str) -> str:
    """Make text safe to place inside a <![CDATA[ ... ]]> block.

    A literal "]]>" would end the block early, so it is escaped.
    """
    if not isinstance(content, str):
        raise TypeError("CDATA content must be a string")
    return _CONTROL_CHARS_RE.sub("", content.replace("]]>", "]]&gt;"))


def escape_xml(content: str) -> str:
    if not isinstance(content, str):
        raise TypeError("XML content must be a string")
    for char, entity in _XML_ESCAPES:
        content = content.replace(char, entity)
    return content


def cdata(content: str) -> str:
    return f"<![CDATA[{sanitize_cdata(content)}]]>"
