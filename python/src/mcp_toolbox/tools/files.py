"""File tools confined to a single workspace directory.

All filenames are resolved relative to the workspace; anything that would
resolve outside of it is rejected.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from mcp_toolbox.core.errors import DomainError
from mcp_toolbox.core.format import ToolDescriptor, ToolParameter
from mcp_toolbox.core.registry import ToolEntry

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE = Path.home() / ".mcp-toolbox-workspace"

_FILENAME = ToolParameter(name="filename", type="string")
_CONTENT = ToolParameter(name="content", type="string")

READ_FILE = ToolDescriptor(
    name="readFile",
    description="Read the contents of a file from the workspace",
    parameters=(_FILENAME,),
)
WRITE_FILE = ToolDescriptor(
    name="writeFile",
    description="Write content to a file in the workspace (creates or overwrites)",
    parameters=(_FILENAME, _CONTENT),
)
APPEND_TO_FILE = ToolDescriptor(
    name="appendToFile",
    description="Append content to an existing file in the workspace",
    parameters=(_FILENAME, _CONTENT),
)
LIST_FILES = ToolDescriptor(name="listFiles", description="List all files in the workspace")
DELETE_FILE = ToolDescriptor(
    name="deleteFile",
    description="Delete a file from the workspace",
    parameters=(_FILENAME,),
)
GET_FILE_INFO = ToolDescriptor(
    name="getFileInfo",
    description="Get information about a file (size, last modified)",
    parameters=(_FILENAME,),
)
GET_WORKSPACE_PATH = ToolDescriptor(
    name="getWorkspacePath", description="Get the workspace directory path"
)


class FileWorkspace:
    """Read/write tools over the files of one directory."""

    def __init__(self, workspace: str | Path | None = None) -> None:
        self.workspace = Path(workspace or DEFAULT_WORKSPACE).expanduser().resolve()
        self.workspace.mkdir(parents=True, exist_ok=True)
        logger.info("File workspace: %s", self.workspace)

    def _resolve(self, filename: str) -> Path:
        if not filename.strip():
            raise DomainError("Filename cannot be empty")
        path = (self.workspace / filename).resolve()
        if path == self.workspace or self.workspace not in path.parents:
            raise DomainError(f"File '{filename}' is outside the workspace")
        return path

    def _existing(self, filename: str) -> Path:
        path = self._resolve(filename)
        if not path.is_file():
            raise DomainError(f"File '{filename}' does not exist")
        return path

    def read_file(self, args: Dict[str, Any]) -> str:
        filename = args["filename"]
        path = self._existing(filename)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise DomainError(f"Error reading file '{filename}': {e}") from e
        return f"Content of '{filename}':\n{content}"

    def write_file(self, args: Dict[str, Any]) -> str:
        filename, content = args["filename"], args["content"]
        path = self._resolve(filename)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise DomainError(f"Error writing file '{filename}': {e}") from e
        return f"Successfully wrote {len(content)} characters to '{filename}'"

    def append_to_file(self, args: Dict[str, Any]) -> str:
        filename, content = args["filename"], args["content"]
        path = self._resolve(filename)
        if not path.is_file():
            raise DomainError(
                f"File '{filename}' does not exist. Use writeFile to create it first."
            )
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise DomainError(f"Error appending to file '{filename}': {e}") from e
        return f"Successfully appended {len(content)} characters to '{filename}'"

    def list_files(self, args: Dict[str, Any]) -> str:
        try:
            files = sorted(p.name for p in self.workspace.iterdir() if p.is_file())
        except OSError as e:
            raise DomainError(f"Error listing files: {e}") from e
        if not files:
            return "No files in workspace"
        return "Files in workspace:\n" + "\n".join(files)

    def delete_file(self, args: Dict[str, Any]) -> str:
        filename = args["filename"]
        path = self._existing(filename)
        try:
            path.unlink()
        except OSError as e:
            raise DomainError(f"Error deleting file '{filename}': {e}") from e
        return f"Successfully deleted '{filename}'"

    def get_file_info(self, args: Dict[str, Any]) -> str:
        filename = args["filename"]
        path = self._existing(filename)
        try:
            stat = path.stat()
        except OSError as e:
            raise DomainError(f"Error getting file info '{filename}': {e}") from e
        modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat()
        return f"File: {filename}\nSize: {stat.st_size} bytes\nLast Modified: {modified}"

    def get_workspace_path(self, args: Dict[str, Any]) -> str:
        return f"Workspace directory: {self.workspace}"

    def tools(self) -> List[ToolEntry]:
        return [
            (READ_FILE, self.read_file),
            (WRITE_FILE, self.write_file),
            (APPEND_TO_FILE, self.append_to_file),
            (LIST_FILES, self.list_files),
            (DELETE_FILE, self.delete_file),
            (GET_FILE_INFO, self.get_file_info),
            (GET_WORKSPACE_PATH, self.get_workspace_path),
        ]
