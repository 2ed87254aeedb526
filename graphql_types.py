"""
GraphQL type helpers for introspection results.

Introspection describes a field type as a nested descriptor, e.g.
{"kind": "NON_NULL", "ofType": {"kind": "SCALAR", "name": "String"}}. The
metadata cache stores these in a compact string notation ("String!",
"[PageArticle]") and the query builders classify fields from that string.
"""

from typing import Any, Optional

SCALAR_TYPES = ("String", "Int", "Float", "Boolean", "ID", "DateTime", "JSON")

UNKNOWN_TYPE = "Unknown"


def normalize_type(type_info: Optional[dict[str, Any]]) -> str:
    """Render an introspection type descriptor as "Name", "Name!" or "[Name]".

    NON_NULL appends "!" and LIST wraps in brackets. Missing or malformed
    descriptors render as "Unknown" rather than raising.
    """
    if not type_info or not isinstance(type_info, dict):
        return UNKNOWN_TYPE

    kind = type_info.get("kind")
    if kind == "NON_NULL":
        return f"{normalize_type(type_info.get('ofType'))}!"
    if kind == "LIST":
        return f"[{normalize_type(type_info.get('ofType'))}]"
    if type_info.get("name"):
        return type_info["name"]

    of_type = type_info.get("ofType")
    if isinstance(of_type, dict) and of_type.get("name"):
        return of_type["name"]
    return UNKNOWN_TYPE


def is_scalar(type_string: str) -> bool:
    # Substring match: "String!" and "[String]" are scalar too.
    return any(scalar in type_string for scalar in SCALAR_TYPES)


def is_searchable_text(type_string: str) -> bool:
    """Only nullable, singular String fields support the `_contains` filter."""
    return type_string == "String"


def is_reference(type_string: str) -> bool:
    # "" is neither scalar nor a Collection/Connection, so it counts as a reference.
    return (
        not is_scalar(type_string)
        and "Collection" not in type_string
        and "Connection" not in type_string
    )
