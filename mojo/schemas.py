"""Request schemas for the chat endpoint."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field


class Attachment(BaseModel):
    name: str
    content_type: str = Field(validation_alias=AliasChoices("content_type", "contentType"))
    size: int | None = None
    url: str


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "tool"]
    content: str | list[dict[str, Any]] = ""
    attachments: list[Attachment] = Field(
        default_factory=list,
        validation_alias=AliasChoices("attachments", "experimental_attachments"),
    )

    def text(self) -> str:
        """Flatten multi-part content to plain text."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(
            str(part.get("text", "")) for part in self.content if part.get("type", "text") == "text"
        )


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
    mode: str = Field(validation_alias=AliasChoices("mode", "group"))
