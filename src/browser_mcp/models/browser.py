"""
Browser-side records shared by every session: tabs, tool descriptors, browser info.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolDescriptor(BaseModel):
    """Page-exposed tool: {name, description, inputSchema}."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    description: Optional[str] = None
    input_schema: dict[str, Any] = Field(default_factory=lambda: {"type": "object"}, alias="inputSchema")


class TabRecord(BaseModel):
    id: int
    title: str = ""
    url: str = ""
    tools: list[ToolDescriptor] = []


class BrowserInfo(BaseModel):
    name: str
    version: str


class ConnectResult(BaseModel):
    """connect() payload"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    version: str
    tab_count: int = Field(alias="tabCount")
