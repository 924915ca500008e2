"""Data models for structured extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class MindMapNode:
    """A labelled concept node with ordered children."""

    label: str
    children: list[MindMapNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"label": self.label}
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    def depth(self) -> int:
        """Levels below this node (0 for a leaf)."""
        return 1 + max((c.depth() for c in self.children), default=-1)


@dataclass
class MindMap:
    """A validated concept tree."""

    root: MindMapNode

    def to_dict(self) -> dict[str, Any]:
        return {"root": self.root.to_dict()}
