"""Repository metadata models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class RepoSourceError(RuntimeError):
    """Raised when the list of repositories cannot be obtained."""


class RepoInfo(BaseModel):
    """A repository to synchronize, as reported by an item source."""

    name: str = Field(..., description="Repository name; also the checkout directory name.")
    clone_url: str = Field(default="", description="HTTPS clone URL.")
    ssh_url: str | None = Field(default=None, description="SSH clone URL, used with --ssh.")
    html_url: str | None = Field(default=None, description="Web page of the repository.")
    updated_at: str | None = Field(default=None, description="Last update timestamp as reported.")
    private: bool = Field(default=False, description="Whether the repository is private.")
    fork: bool = Field(default=False, description="Whether the repository is a fork.")
    parent_clone_url: str | None = Field(
        default=None,
        description="Clone URL of the upstream repository for forks.",
    )

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Repository name must not be empty")
        if "/" in normalized or normalized in {".", ".."}:
            raise ValueError(f"Repository name '{normalized}' is not a valid directory name")
        return normalized

    @model_validator(mode="before")
    @classmethod
    def _accept_url_alias(cls, data: Any):  # type: ignore[override]
        if isinstance(data, dict) and "url" in data and "clone_url" not in data:
            data = dict(data)
            data["clone_url"] = data.pop("url")
        return data


__all__ = ["RepoInfo", "RepoSourceError"]
