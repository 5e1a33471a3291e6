import json
import time
import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class ChatMessage(BaseModel):
    role: str = Field(min_length=1)
    content: Any = None
    type: str = "text"
    message_id: str | None = None

    @model_validator(mode="after")
    def coerce_content(self):
        if self.content is None:
            if self.role == "system":
                raise ValueError("System message requires content")
            self.content = ""
        elif not isinstance(self.content, str):
            self.content = json.dumps(self.content, ensure_ascii=False, separators=(",", ":"))
        return self


class ChatCompletionRequest(BaseModel):
    model: str = Field(min_length=1)
    messages: list[ChatMessage]
    stream: bool = False

    @field_validator("messages")
    @classmethod
    def messages_not_empty(cls, v: list[ChatMessage]) -> list[ChatMessage]:
        if not v:
            raise ValueError("Messages should be a non-empty array")
        return v


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4()}"


class ChunkDelta(BaseModel):
    content: str


class ChunkChoice(BaseModel):
    index: int = 0
    delta: ChunkDelta


class ChatCompletionChunk(BaseModel):
    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str
    choices: list[ChunkChoice]

    @classmethod
    def for_text(cls, completion_id: str, model: str, text: str) -> "ChatCompletionChunk":
        return cls(
            id=completion_id,
            model=model,
            choices=[ChunkChoice(delta=ChunkDelta(content=text))],
        )


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class CompletionChoice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str = "stop"


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    id: str = Field(default_factory=new_completion_id)
    object: Literal["chat.completion"] = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str
    choices: list[CompletionChoice]
    usage: Usage = Field(default_factory=Usage)
