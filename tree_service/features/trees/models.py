"""SQLAlchemy models for the trees feature."""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from tree_service.core.database import Base, IntegerPKMixin, NestedSetMixin


class TreeNode(Base, IntegerPKMixin, NestedSetMixin):
    """A node of a nested-set forest.

    Position in the tree is carried entirely by ``lft``/``rgt``/``depth``;
    there is no parent pointer. Every row of the table shares one bound
    space, so ``owner_id`` tags a node with its forest without partitioning
    the bounds.
    """

    __tablename__ = "tree_nodes"
    __table_args__ = (
        CheckConstraint("lft >= 0", name="lft_non_negative"),
        CheckConstraint("rgt > lft", name="rgt_after_lft"),
        CheckConstraint("depth >= 0", name="depth_non_negative"),
    )

    owner_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True,
        comment="Opaque forest tag",
    )
    label: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Optional display label",
    )

    def __repr__(self) -> str:
        """Return node summary for debugging."""
        return (
            f"<TreeNode(id={self.id}, owner_id={self.owner_id}, "
            f"lft={self.lft}, rgt={self.rgt}, depth={self.depth})>"
        )
