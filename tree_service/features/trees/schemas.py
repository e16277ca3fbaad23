"""Pydantic schemas for the trees feature."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TreeNodeCreate(BaseModel):
    """Payload used when inserting a node.

    Bounds and depth are owned by the tree service, so ``lft``, ``rgt`` and
    ``depth`` (or any other unknown key) are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    owner_id: int | None = Field(
        default=None,
        ge=0,
        description="Forest tag. Defaults to the configured root owner.",
    )
    label: str | None = Field(
        default=None,
        max_length=255,
        description="Optional display label",
    )

    @field_validator("label")
    @classmethod
    def strip_label(cls, v: str | None) -> str | None:
        """Strip surrounding whitespace; blank labels become None."""
        if v is None:
            return v
        return v.strip() or None


class TreeNodeRead(BaseModel):
    """A node and, when built by ``get_tree``, its nested children."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    label: str | None = None
    lft: int
    rgt: int
    depth: int
    children: list[TreeNodeRead] = Field(default_factory=list)

    @property
    def descendant_count(self) -> int:
        return (self.rgt - self.lft - 1) // 2


class TreeProblems(BaseModel):
    """Result of an integrity scan.

    Every list holds node ids. A healthy table has all lists empty.
    """

    bad_bounds: list[int] = Field(
        default_factory=list,
        description="Nodes with lft < 0, rgt <= lft or depth < 0",
    )
    duplicate_bounds: list[int] = Field(
        default_factory=list,
        description="Nodes sharing a bound value with an earlier node",
    )
    overlapping: list[int] = Field(
        default_factory=list,
        description="Nodes whose interval crosses another without nesting",
    )
    wrong_depth: list[int] = Field(
        default_factory=list,
        description="Nodes whose depth is not their parent's depth + 1",
    )
    wrong_child_count: list[int] = Field(
        default_factory=list,
        description="Nodes whose span disagrees with their stored descendants",
    )
    multiple_roots: list[int] = Field(
        default_factory=list,
        description="Depth-0 nodes beyond the first, or nodes outside the root",
    )

    @property
    def is_healthy(self) -> bool:
        return not any(
            (
                self.bad_bounds,
                self.duplicate_bounds,
                self.overlapping,
                self.wrong_depth,
                self.wrong_child_count,
                self.multiple_roots,
            )
        )


__all__ = [
    "TreeNodeCreate",
    "TreeNodeRead",
    "TreeProblems",
]
