"""
Frame Encoding
==============

Encoder port for the staged queue's encode stage.

An encoder is any callable taking an input frame and returning the wire
payload. Encoders must be pure, synchronous and must not block
indefinitely; they may run on worker threads when async encoding is enabled.

The default encoder serializes pydantic frames to JSON text frames.
"""

from typing import Callable, Optional, TypeVar

from pydantic import BaseModel


InT = TypeVar("InT")
OutT = TypeVar("OutT")

Encoder = Callable[[InT], OutT]


class JsonFrameEncoder:
    """
    Serializes a pydantic frame model to a JSON string.

    Attributes:
        indent: Indentation for pretty output, or None for compact JSON

    Example:
        encoder = JsonFrameEncoder(indent=None)
        payload = encoder(frame)
    """

    def __init__(self, indent: Optional[int] = 2) -> None:
        if indent is not None and indent < 0:
            raise ValueError("indent must be >= 0 or None")
        self.indent = indent

    def __call__(self, frame: BaseModel) -> str:
        return frame.model_dump_json(indent=self.indent)

    def __repr__(self) -> str:
        return f"JsonFrameEncoder(indent={self.indent})"
