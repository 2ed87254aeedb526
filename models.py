"""
Data Models for the Contentful GraphQL MCP Server

This module defines Pydantic models for structured data exchange between the MCP server,
its metadata cache and clients. These models ensure consistent data formatting for:

1. Content type summaries and parsed field schemas discovered through introspection
2. Smart search results aggregated across content types
3. Tool responses following MCP protocol standards

Field names that appear in tool output use the camelCase spelling clients expect
(queryName, contentType, isError); the Python attributes are snake_case and the
aliases are applied when dumping with by_alias=True.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentTypeSummary(BaseModel):
    """
    A content type discovered from the root query type.

    Attributes:
        name (str): Canonical short identifier, e.g. "pageArticle"
        query_name (str): Root query field used to fetch the collection, e.g. "pageArticleCollection"
        description (str): Optional description taken from the root query field
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    query_name: str = Field(alias="queryName")
    description: Optional[str] = None


class FieldDescriptor(BaseModel):
    """A single field of a content type with its normalized GraphQL type string."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    type: str


class ContentTypeSchema(BaseModel):
    """
    Parsed field schema of a content type (or of its Collection wrapper type).

    Fields keep the order returned by introspection.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    content_type: str = Field(alias="contentType")
    description: Optional[str] = None
    fields: List[FieldDescriptor] = Field(default_factory=list)

    def field_names(self) -> List[str]:
        return [field.name for field in self.fields]


class SearchResult(BaseModel):
    """Items matched in one content type by a smart search."""
    model_config = ConfigDict(populate_by_name=True)

    content_type: str = Field(alias="contentType")
    items: List[Dict[str, Any]]


class SmartSearchResponse(BaseModel):
    """Aggregated smart search output across all searched content types."""
    model_config = ConfigDict(populate_by_name=True)

    query: str
    results: List[SearchResult]
    total_content_types_searched: int = Field(alias="totalContentTypesSearched")
    content_types_with_results: int = Field(alias="contentTypesWithResults")


class CacheStatus(BaseModel):
    """Read-only snapshot of the metadata cache."""
    model_config = ConfigDict(populate_by_name=True)

    available: bool
    content_types_count: int = Field(alias="contentTypesCount")
    schemas_count: int = Field(alias="schemasCount")
    last_update: Optional[datetime] = Field(default=None, alias="lastUpdate")


class ContentItem(BaseModel):
    """
    A content item in the MCP response format.

    Follows the Model Context Protocol specification for content items.
    Only text content is produced by this server.

    Attributes:
        type (Literal): Content type - currently only "text" is used
        text (str): The actual content data as a string
    """
    type: Literal["text", "image", "resource"]
    text: str


class ToolResponse(BaseModel):
    """
    The complete tool response format for MCP protocol.

    Contains an array of content items that hold the actual data returned by
    the tool, plus an optional isError flag for failures that were handled
    inside the tool.

    Attributes:
        content (List[ContentItem]): Array of content items with minimum length of 1
        is_error (bool): Set when the tool reports a handled failure
    """
    model_config = ConfigDict(populate_by_name=True)

    content: List[ContentItem] = Field(min_length=1)
    is_error: Optional[bool] = Field(default=None, alias="isError")

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResponse":
        return cls(content=[ContentItem(type="text", text=text)], is_error=True if is_error else None)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
