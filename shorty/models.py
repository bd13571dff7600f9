"""Data models for aliases and categories"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List


@dataclass
class Alias:
    """Represents a shell alias"""
    name: str
    command: str
    note: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    category: Optional[str] = None

    def __post_init__(self):
        # "" and None mean the same thing for optional text
        if not self.note:
            self.note = None
        if not self.category:
            self.category = None
        seen = []
        for tag in self.tags:
            if tag and tag not in seen:
                seen.append(tag)
        self.tags = seen

    def to_dict(self) -> dict:
        """Convert alias to dictionary for export"""
        return {
            "name": self.name,
            "command": self.command,
            "note": self.note,
            "tags": list(self.tags),
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alias":
        """Create alias from dictionary, ignoring unknown keys"""
        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.replace(";", ",").split(",")]
        return cls(
            name=str(data["name"]),
            command=str(data["command"]),
            note=data.get("note") or data.get("description"),
            tags=[str(t) for t in tags],
            category=data.get("category"),
        )

    def __str__(self) -> str:
        """String representation for display"""
        return f"{self.name}='{self.command}'"


@dataclass
class Category:
    """A named bucket for aliases; parents form a forest"""
    name: str
    description: str = ""
    parent: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "parent": self.parent,
            "color": self.color,
            "icon": self.icon,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Category":
        data = data.copy()
        if "created_at" in data and isinstance(data["created_at"], str):
            data["created_at"] = datetime.fromisoformat(data["created_at"])
        known = {"name", "description", "parent", "color", "icon", "created_at"}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})
