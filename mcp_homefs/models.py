from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ToolArgs(BaseModel):
    """Arguments accepted in snake_case or in the camelCase used by tool clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class DirectoryArgs(ToolArgs):
    directory_path: str = Field("", description='Directory relative to the root, e.g. "Documents".')


class RequiredDirectoryArgs(ToolArgs):
    directory_path: str = Field(..., description='Directory relative to the root, e.g. "Documents/my_folder".')


class FileArgs(ToolArgs):
    file_path: str = Field(..., description='File relative to the root, e.g. "Documents/my_notes.txt".')


class FileContentArgs(FileArgs):
    content: str


class EditFileArgs(FileArgs):
    old_content: str = Field(..., min_length=1, description="The unique content to be replaced.")
    new_content: str
    regex: bool = Field(False, description="Treat old_content as a regular expression.")


class ReplaceStringArgs(FileArgs):
    old_string: str = Field(..., min_length=1)
    new_string: str
    regex: bool = False


class RenameArgs(ToolArgs):
    old_path: str
    new_path: str


class MoveArgs(ToolArgs):
    source_path: str
    destination_path: str


class SearchInFileArgs(FileArgs):
    pattern: str = Field(..., min_length=1)
    regex: bool = False
    ignore_case: bool = False


class ListRecentArgs(DirectoryArgs):
    limit: Optional[int] = Field(None, ge=1, description="Maximum number of files to return.")


class SearchFilesArgs(DirectoryArgs):
    file_name_pattern: Optional[str] = Field(None, description="Case-insensitive name filter.")
    min_size: Optional[int] = Field(None, ge=0, description="Minimum file size in bytes.")
    max_size: Optional[int] = Field(None, ge=0, description="Maximum file size in bytes.")
    modified_since: Optional[float] = Field(
        None, description="Epoch timestamp in milliseconds; only files modified at or after it match."
    )
    regex: bool = False
    recursive: bool = False


class SaveContentArgs(FileContentArgs):
    overwrite: bool = False


class ExportArgs(ToolArgs):
    source_type: Literal["text", "file"]
    source: str = Field(..., description="Text to export, or a file path when source_type is 'file'.")
    format: Literal["md", "pdf"]
    output_path: str
    overwrite: bool = False


class ZipArgs(ToolArgs):
    directory_path: str
    output_path: str


class UnzipArgs(ToolArgs):
    file_path: str
    destination_path: str


class ChmodArgs(FileArgs):
    mode: Union[int, str] = Field(..., description='Permission bits, e.g. 493, "755" or "0o755".')

    @field_validator("mode")
    @classmethod
    def parse_mode(cls, v: Union[int, str]) -> int:
        if isinstance(v, str):
            text = v.strip().lower()
            if text.startswith("0o"):
                text = text[2:]
            try:
                v = int(text, 8)
            except ValueError as exc:
                raise ValueError(f"mode must be an octal string, got {v!r}") from exc
        if not 0 <= v <= 0o7777:
            raise ValueError("mode must be between 0 and 0o7777")
        return v
