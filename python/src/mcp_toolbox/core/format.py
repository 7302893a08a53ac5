"""Wire format: Pydantic models for envelopes, tool descriptors and results.

Requests and responses use a JSON-RPC-flavored framing:

- Requests: ``{"id", "method", "params"}``
- Responses: ``{"id", "result"}`` or ``{"id", "error": {"code", "message"}}``

Tool discovery returns :class:`ToolDescriptor` entries; tool calls return an
:class:`InvocationResult` carrying either ``text`` content blocks or an error.
"""

from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

RequestId = Union[str, int, float]

ParameterType = Literal["number", "string"]


class JSONRPCMessage(BaseModel):
    """Base class for all envelope messages."""

    jsonrpc: Literal["2.0"] = "2.0"

    class Config:
        extra = "allow"


class JSONRPCError(BaseModel):
    """Error object carried in a response envelope."""

    code: str
    message: str


class JSONRPCRequest(JSONRPCMessage):
    """Request envelope."""

    id: Optional[RequestId] = None
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCResponse(JSONRPCMessage):
    """Response envelope. Exactly one of ``result`` and ``error`` is set."""

    id: Optional[RequestId] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[JSONRPCError] = None

    @model_validator(mode="after")
    def validate_result_error(self) -> "JSONRPCResponse":
        """Ensure result and error are mutually exclusive."""
        if (self.result is None) == (self.error is None):
            raise ValueError("response must carry exactly one of 'result' or 'error'")
        return self

    @classmethod
    def success(cls, msg_id: Optional[RequestId], result: Dict[str, Any]) -> "JSONRPCResponse":
        return cls(id=msg_id, result=result)

    @classmethod
    def failure(
        cls, msg_id: Optional[RequestId], code: str, message: str
    ) -> "JSONRPCResponse":
        return cls(id=msg_id, error=JSONRPCError(code=code, message=message))

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the wire. ``id`` is always present, possibly null."""
        data: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump()
        else:
            data["result"] = self.result
        return data


class ToolParameter(BaseModel):
    """One entry of a tool's parameter schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType
    required: bool = True


class ToolDescriptor(BaseModel):
    """Public metadata describing a tool. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Unique tool identifier")
    description: str = Field(description="Human readable description")
    parameters: Tuple[ToolParameter, ...] = Field(
        default=(), description="Ordered parameter schema"
    )

    def parameter(self, name: str) -> Optional[ToolParameter]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


class TextContent(BaseModel):
    """A ``text`` content block."""

    type: Literal["text"] = "text"
    text: str


class InvocationRequest(BaseModel):
    """A single tool call as issued by the client."""

    id: RequestId
    tool_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": self.id,
            "method": "callTool",
            "params": {"name": self.tool_name, "arguments": self.arguments},
        }


class InvocationResult(BaseModel):
    """Outcome of a tool call: content blocks on success, an error on failure."""

    id: Optional[RequestId] = None
    content: Optional[List[TextContent]] = None
    error: Optional[JSONRPCError] = None

    @model_validator(mode="after")
    def validate_outcome(self) -> "InvocationResult":
        """Exactly one of content/error must be populated."""
        if (self.content is None) == (self.error is None):
            raise ValueError("result must carry exactly one of 'content' or 'error'")
        return self

    @classmethod
    def success(cls, text: str, msg_id: Optional[RequestId] = None) -> "InvocationResult":
        return cls(id=msg_id, content=[TextContent(text=text)])

    @classmethod
    def failure(
        cls, code: str, message: str, msg_id: Optional[RequestId] = None
    ) -> "InvocationResult":
        return cls(id=msg_id, error=JSONRPCError(code=code, message=message))

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def text(self) -> str:
        """Concatenated text of all content blocks ("" on failure)."""
        if not self.content:
            return ""
        return "".join(block.text for block in self.content)

    def to_response(self) -> JSONRPCResponse:
        if self.error is not None:
            return JSONRPCResponse(id=self.id, error=self.error)
        return JSONRPCResponse(
            id=self.id,
            result={"content": [block.model_dump() for block in self.content or []]},
        )

    @classmethod
    def from_response(cls, response: JSONRPCResponse) -> "InvocationResult":
        """Normalize a ``callTool`` response envelope.

        Raises:
            ValueError: If the result payload has no valid content list.
        """
        if response.error is not None:
            return cls(id=response.id, error=response.error)
        blocks = (response.result or {}).get("content")
        if not isinstance(blocks, list):
            raise ValueError("callTool result is missing a 'content' list")
        # Only text blocks are produced; other kinds are skipped.
        content = [
            TextContent.model_validate(block)
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        return cls(id=response.id, content=content)
