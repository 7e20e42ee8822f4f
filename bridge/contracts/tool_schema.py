# ==============================
# Tool Contracts
# ==============================
"""
Tool contracts for the bridge.

These models define the stable shapes that flow through dispatch:
- ToolDescriptor: static metadata + execution strategy for one operation
- Invocation: one decoded request (name + arguments)
- Outcome: Success | Failure produced by exactly one backend
- ResponseEnvelope: the only shape handed back to the transport

No core module should invent its own result shape. Errors are data, not control flow.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

import json
from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bridge.utils.validation import validate_slug

# ==============================
# Typing
# ==============================
Arguments = Mapping[str, Any]
BodyBuilder = Callable[[Arguments], Any]
Renderer = Callable[[Any, Arguments], str]
ArgsBuilder = Callable[[Arguments], List[str]]


# ==============================
# Enums
# ==============================
class ParamType(str, Enum):
    """JSON-schema primitive types accepted by operations."""
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"


class ToolErrorCode(str, Enum):
    """Standard error codes for dispatch failures."""
    UNKNOWN_TOOL = "unknown_tool"
    MISSING_ARGUMENT = "missing_argument"
    INVALID_ARGUMENT = "invalid_argument"
    UPSTREAM_HTTP = "upstream_http"
    UPSTREAM_TRANSPORT = "upstream_transport"
    MALFORMED_UPSTREAM_BODY = "malformed_upstream_body"
    PROCESS_SPAWN = "process_spawn"
    PROCESS_NONZERO_EXIT = "process_nonzero_exit"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


# ==============================
# Descriptors
# ==============================
class ParamSpec(BaseModel):
    """One declared argument of an operation."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., description="Argument name as sent by the caller.")
    type: ParamType = Field(default=ParamType.STRING)
    required: bool = Field(default=False)
    description: str = Field(default="")
    enum: Optional[List[Any]] = Field(default=None, description="Optional closed set of accepted values.")

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type.value, "description": self.description}
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        return schema


def pretty_json(data: Any, arguments: Arguments) -> str:
    """Default HTTP renderer: the parsed body as indented JSON."""
    return json.dumps(data, indent=2, ensure_ascii=False)


class HttpStrategy(BaseModel):
    """Issue one authenticated call against the remote management API."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["http"] = "http"
    path_template: str = Field(..., description="Path below the tailnet base URL; '{arg}' placeholders.")
    method: HttpMethod = Field(default=HttpMethod.GET)
    body_builder: Optional[BodyBuilder] = Field(default=None, description="Builds the JSON body from arguments.")
    render: Renderer = Field(default=pretty_json, description="Projects the parsed body into response text.")

    @field_validator("path_template")
    @classmethod
    def _path_is_absolute(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("path_template must start with '/'")
        return v


class SubprocessStrategy(BaseModel):
    """Spawn one local command with an explicit argument vector."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["subprocess"] = "subprocess"
    command: str = Field(..., min_length=1, description="Executable name or path.")
    args_builder: ArgsBuilder = Field(..., description="Builds the argument vector (without the command).")


Strategy = Union[HttpStrategy, SubprocessStrategy]


class ToolDescriptor(BaseModel):
    """
    Static metadata + execution strategy for one invocable operation.

    Immutable; built once at startup and shared by every invocation.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    description: str
    params: List[ParamSpec] = Field(default_factory=list)
    strategy: Strategy = Field(..., discriminator="kind")

    @field_validator("name")
    @classmethod
    def _name_is_slug(cls, v: str) -> str:
        validate_slug(v, what="tool name")
        return v

    @model_validator(mode="after")
    def _unique_params(self) -> "ToolDescriptor":
        names = [p.name for p in self.params]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate parameter names in tool '{self.name}'")
        return self

    def required_params(self) -> List[str]:
        return [p.name for p in self.params if p.required]

    def param(self, name: str) -> Optional[ParamSpec]:
        for p in self.params:
            if p.name == name:
                return p
        return None

    def to_tool_definition(self) -> Dict[str, Any]:
        """Capability advertisement shape (name, description, JSON schema)."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.params},
                "required": self.required_params(),
            },
        }


# ==============================
# Runtime Models
# ==============================
class Invocation(BaseModel):
    """One decoded request. Created per call, never persisted."""
    model_config = ConfigDict(extra="forbid")

    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("arguments", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class Success(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["success"] = "success"
    text: str


class Failure(BaseModel):
    """Structured failure. tool_name is set once a backend was selected."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["failure"] = "failure"
    code: ToolErrorCode
    message: str
    tool_name: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    def for_tool(self, tool_name: str) -> "Failure":
        return self.model_copy(update={"tool_name": tool_name})


Outcome = Union[Success, Failure]


class TextContent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["text"] = "text"
    text: str


class ResponseEnvelope(BaseModel):
    """
    Standard envelope returned to the transport for every invocation.

    Pattern:
      content: [TextContent, ...]  (never empty)
      is_error: bool               (serialized as isError)
    """
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    content: List[TextContent]
    is_error: bool = Field(default=False, alias="isError")

    @model_validator(mode="after")
    def _content_not_empty(self) -> "ResponseEnvelope":
        if not self.content:
            raise ValueError("ResponseEnvelope.content must not be empty")
        return self

    @property
    def text(self) -> str:
        return "\n".join(c.text for c in self.content)

    def to_dict(self) -> Dict[str, Any]:
        """Stable serialization wrapper (wire field names)."""
        return self.model_dump(mode="json", by_alias=True)
