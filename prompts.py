"""
Prompt templates that guide an assistant through schema exploration and query building.
"""

from typing import List, Optional

from mcp.types import PromptMessage, TextContent


def _message(role: str, text: str) -> PromptMessage:
    return PromptMessage(role=role, content=TextContent(type="text", text=text))


def explore_graphql_schema(goal: Optional[str] = None) -> List[PromptMessage]:
    goal = goal or "different types of content"
    return [
        _message(
            "assistant",
            "I'm your Contentful GraphQL schema explorer. I can help you understand and navigate the "
            "GraphQL schema for your content model, so you can construct effective queries for your content needs.",
        ),
        _message(
            "user",
            f"Help me explore the GraphQL schema in my Contentful space so I can create queries to retrieve "
            f"{goal}. Please guide me through the process step by step.",
        ),
    ]


def build_graphql_query(
    content_type: Optional[str] = None,
    fields: Optional[str] = None,
    filters: Optional[str] = None,
    include_references: Optional[str] = None,
) -> List[PromptMessage]:
    if not content_type:
        return [
            _message(
                "assistant",
                "I need to know which content type you want to query. Please provide a contentType parameter.",
            )
        ]

    request = f'Please help me build a GraphQL query for the "{content_type}" content type to retrieve {fields or "all relevant fields"}'
    if filters:
        request += f" and filter by {filters}"
    if (include_references or "").lower() == "true":
        request += " including any referenced content"
    return [
        _message(
            "assistant",
            "I'm your Contentful GraphQL query builder. I can help you construct well-formed queries to "
            "retrieve exactly the content you need from your Contentful space.",
        ),
        _message("user", f"{request}. Guide me through the process step by step."),
    ]
