"""
Build GraphQL documents from cached content type schemas.

Everything here is derived from a ContentTypeSchema's field list alone; no
network calls are made. Three kinds of documents are produced:

- example queries (a collection query plus a single-entry-by-id query)
- full-text search queries that OR together `{field}_contains` filters
- the per-type queries executed by smart search
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from graphql_client import COLLECTION_SUFFIX, strip_collection_suffix
from graphql_types import is_reference, is_scalar, is_searchable_text
from models import ContentTypeSchema, FieldDescriptor

# Upper bound on `_contains` conditions OR-ed into one search filter when the
# caller gives no field list.
MAX_SEARCH_FIELDS = 3

SEARCH_QUERY_LIMIT = 10


class NoSearchableFieldsError(Exception):
    def __init__(self, content_type: str, available_fields: List[str]):
        self.content_type = content_type
        self.available_fields = available_fields
        super().__init__(
            f'No searchable text fields found for content type "{content_type}". '
            f"Available fields: {', '.join(available_fields) or '(none)'}"
        )


@dataclass
class SearchQuery:
    content_type: str
    operation_name: str
    collection_field: str
    query: str
    fields: List[FieldDescriptor]
    variables: Dict[str, Any] = field(default_factory=dict)


def _lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


def _upper_first(name: str) -> str:
    return name[:1].upper() + name[1:]


def collection_field_name(content_type: str) -> str:
    """PageArticle -> pageArticleCollection; PageArticleCollection -> pageArticleCollection."""
    name = _lower_first(content_type)
    if name.endswith(COLLECTION_SUFFIX):
        return name
    return f"{name}{COLLECTION_SUFFIX}"


def singular_field_name(content_type: str) -> str:
    """Root field for a single entry: PageArticle(Collection) -> pageArticle."""
    return strip_collection_suffix(_lower_first(content_type))


def search_operation_name(content_type: str) -> str:
    """Operation name for search documents, e.g. SearchPageArticle."""
    return f"Search{_upper_first(strip_collection_suffix(content_type))}"


def scalar_fields(schema: ContentTypeSchema) -> List[FieldDescriptor]:
    """Fields selectable without a sub-selection (String, Int, DateTime, ...)."""
    return [f for f in schema.fields if is_scalar(f.type)]


def reference_fields(schema: ContentTypeSchema) -> List[FieldDescriptor]:
    """Single or list links to other entries; collection and connection fields are excluded."""
    return [f for f in schema.fields if is_reference(f.type)]


def searchable_fields(
    schema: ContentTypeSchema, allowed: Optional[Iterable[str]] = None
) -> List[FieldDescriptor]:
    """
    Text fields usable in a `_contains` search.

    Args:
        schema: The content type schema to pick fields from.
        allowed: Optional field names to restrict the search to.

    Returns:
        list: With `allowed`, every nullable String field named in it.
        Without, the first MAX_SEARCH_FIELDS nullable String fields.
    """
    fields = [f for f in schema.fields if is_searchable_text(f.type)]
    if allowed:
        allowed = set(allowed)
        return [f for f in fields if f.name in allowed]
    return fields[:MAX_SEARCH_FIELDS]


def _reference_base_type(type_string: str) -> str:
    return type_string.replace("!", "").replace("[", "").replace("]", "")


def build_example_query(schema: ContentTypeSchema, include_relations: bool = False) -> str:
    """
    Generate a commented example document for a content type.

    Args:
        schema: The content type schema.
        include_relations: Add reference fields as `... on Type` placeholders.

    Returns:
        str: A collection query (limit 5) followed by a single-entry-by-id query.
    """
    collection_name = collection_field_name(schema.content_type)
    singular_name = singular_field_name(schema.content_type)
    scalars = [f.name for f in scalar_fields(schema)]
    references = reference_fields(schema) if include_relations else []

    lines = [
        f"# Example query for {schema.content_type}",
        "query {",
        f"  {collection_name}(limit: 5) {{",
        "    items {",
    ]
    lines.extend(f"      {name}" for name in scalars)

    if references:
        lines.append("")
        lines.append("      # Related content references")
        for ref in references:
            ref_type = _reference_base_type(ref.type)
            lines.extend([
                f"      {ref.name} {{",
                f"        ... on {ref_type} {{",
                f"          # Add fields you want from {ref_type} here",
                "        }",
                "      }",
            ])

    lines.extend([
        "    }",
        "  }",
        "}",
        "",
        "# You can also query a single item by ID",
        f"query GetSingle{_upper_first(singular_name)}($id: String!) {{",
        f"  {singular_name}(id: $id) {{",
    ])
    lines.extend(f"    {name}" for name in scalars)
    lines.extend([
        "  }",
        "}",
        "",
        "# Variables for the above query would be:",
        "# {",
        '#   "id": "your-entry-id-here"',
        "# }",
    ])
    return "\n".join(lines)


def build_search_document(
    schema: ContentTypeSchema,
    fields: List[FieldDescriptor],
    selection: List[str],
    limit: int = SEARCH_QUERY_LIMIT,
) -> str:
    """
    Build a parametrized OR search over `fields`.

    Args:
        schema: The content type schema being searched.
        fields: Fields combined as `{field}_contains: $searchTerm` conditions.
        selection: Field names selected on each item besides `sys { id }`.
        limit: Maximum number of items, inlined in the document.

    Returns:
        str: A GraphQL document whose only variable is `$searchTerm`.
    """
    conditions = ",\n".join(f"    {{ {f.name}_contains: $searchTerm }}" for f in fields)
    items = "\n".join(f"      {name}" for name in selection)
    return (
        f"query {search_operation_name(schema.content_type)}($searchTerm: String!) {{\n"
        f"  {collection_field_name(schema.content_type)}(where: {{ OR: [\n"
        f"{conditions}\n"
        f"  ] }}, limit: {int(limit)}) {{\n"
        f"    items {{\n"
        f"      sys {{ id }}\n"
        f"{items}\n"
        f"    }}\n"
        f"  }}\n"
        f"}}"
    )


def build_search_query(
    schema: ContentTypeSchema, search_term: str, fields: Optional[Iterable[str]] = None
) -> SearchQuery:
    """
    Build the search query returned to clients by the query builder tool.

    Items select `sys { id }` and every scalar field, not just the searched ones.
    Raises NoSearchableFieldsError when no field qualifies.
    """
    searched = searchable_fields(schema, fields)
    if not searched:
        raise NoSearchableFieldsError(schema.content_type, schema.field_names())

    selection = [f.name for f in scalar_fields(schema) if f.name != "sys"]
    return SearchQuery(
        content_type=schema.content_type,
        operation_name=search_operation_name(schema.content_type),
        collection_field=collection_field_name(schema.content_type),
        query=build_search_document(schema, searched, selection),
        fields=searched,
        variables={"searchTerm": search_term},
    )


def format_search_query(search_query: SearchQuery) -> str:
    """Human-readable rendering: header, query document, variables and searched fields."""
    field_lines = "\n".join(f"- {f.name} ({f.type})" for f in search_query.fields)
    return (
        f"# Search query for {search_query.content_type}\n"
        f"# Searches {len(search_query.fields)} text field(s) with an OR condition\n\n"
        f"{search_query.query}\n\n"
        f"Variables:\n"
        f"{json.dumps(search_query.variables, indent=2)}\n\n"
        f"Fields searched:\n"
        f"{field_lines}"
    )
