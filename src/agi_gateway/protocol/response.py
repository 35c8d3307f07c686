"""Response record for the AGI protocol.

Every command sent to the peer is answered by exactly one response line:

    200 result=0
    200 result=1 (some value)

The line is parsed into a ``Response``. Instances are immutable.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Response(BaseModel):
    """A parsed response line.

    Example:
        "200 result=1 (timeout)" -> Response(code=200, result="1", value="timeout")
    """

    model_config = ConfigDict(frozen=True)

    code: int
    result: str
    value: str | None = None

    def is_success(self) -> bool:
        """Check for a 2xx status code."""
        return 200 <= self.code < 300

    def __str__(self) -> str:
        if self.value is None:
            return f"{self.code} result={self.result}"
        return f"{self.code} result={self.result} ({self.value})"
