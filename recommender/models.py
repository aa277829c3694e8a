from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]


class Product(BaseModel):
    """Catalog item as surfaced by the agent; every field may be missing."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    product_name: Optional[str] = Field(default=None, alias="productName")
    price: Optional[str] = None
    description: Optional[str] = None
    features: Optional[List[str]] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    category: Optional[str] = None
    pros: Optional[List[str]] = None
    cons: Optional[List[str]] = None


class AgentResponse(BaseModel):
    """Normalized agent reply envelope."""
    model_config = ConfigDict(frozen=True)

    message: str = ""
    recommendations: List[Any] = Field(default_factory=list)
    suggestions: List[Any] = Field(default_factory=list)


class Message(BaseModel):
    """One conversation turn; immutable once created."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    role: Role
    content: str
    agent_data: Optional[AgentResponse] = Field(default=None, alias="agentData")
    timestamp: int


class ConversationMessage(BaseModel):
    """Minimal history entry sent to the agent."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ComposerRequest(BaseModel):
    """Request payload for composer edits."""
    value: str = ""


class SubmitRequest(BaseModel):
    """Request payload for submitting a turn; empty text submits the composer."""
    text: Optional[str] = None


class SuggestionRequest(BaseModel):
    """Request payload for a suggestion chip click."""
    suggestion: str


class CategoryRequest(BaseModel):
    """Request payload for a category shortcut click."""
    name: str


class SampleDataRequest(BaseModel):
    """Request payload for the sample-data toggle."""
    enabled: bool


class CreateSessionRequest(BaseModel):
    """Request payload for session creation."""
    session_id: Optional[str] = None


class ProductCardView(BaseModel):
    """Rendered product card with every display fallback applied."""
    message_index: int
    product_index: int
    product_name: str
    price: str
    description: str
    category: Optional[str]
    features: List[str]
    compact_features: List[str]
    pros: List[str]
    cons: List[str]
    image_url: str
    image_alt: str
    expanded: bool
    toggle_label: str


class MessageView(BaseModel):
    """Rendered chat turn."""
    index: int
    role: Role
    content: str
    timestamp: int
    products: List[ProductCardView] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class UploadStatusView(BaseModel):
    """Upload coordinator status for the sidebar."""
    state: str
    status: str
    is_error: bool
    selection_generation: int
    accept: str


class SessionView(BaseModel):
    """Full session snapshot returned by every session endpoint."""
    session_id: str
    messages: List[MessageView]
    input_value: str
    input_length: int
    input_limit: int
    input_counter: str
    is_loading: bool
    can_send: bool
    sample_data_enabled: bool
    show_welcome: bool
    categories: List[str]
    agent_status: str
    upload: UploadStatusView
    accepted: bool = True
