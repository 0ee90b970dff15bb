from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class GitOptions(BaseModel):
    cwd: Optional[Path] = None
    git_dir: Optional[Path] = Field(default=None, alias="gitDir")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def coerce(cls, options: "GitOptions | Mapping[str, Any] | None") -> "GitOptions":
        if options is None:
            return cls()
        if isinstance(options, GitOptions):
            return options
        return cls.model_validate(dict(options))


class Settings(BaseModel):
    git_executable: str = "git"
    patch_filename: str = ".stashkeeper.patch"
    run_log_path: Optional[Path] = None
    audit_log_path: Optional[Path] = None

    model_config = ConfigDict(extra="forbid")


OptionsLike = Union[GitOptions, Mapping[str, Any], None]
