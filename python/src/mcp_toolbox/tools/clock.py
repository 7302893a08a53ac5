"""Clock tool."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List

from mcp_toolbox.core.format import ToolDescriptor
from mcp_toolbox.core.registry import ToolEntry

GET_CURRENT_TIME = ToolDescriptor(
    name="getCurrentTime",
    description="Get the current date and time in ISO format",
)


class Clock:
    def __init__(self, now: Callable[[], datetime] = datetime.now) -> None:
        self._now = now

    def get_current_time(self, args: Dict[str, Any]) -> str:
        return self._now().isoformat()

    def tools(self) -> List[ToolEntry]:
        return [(GET_CURRENT_TIME, self.get_current_time)]
