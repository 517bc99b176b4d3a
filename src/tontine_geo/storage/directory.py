"""
Local group/profile directory.

For the `memory` and `file` store backends there is no managed backend to read group
names, profile names or memberships from, so they are seeded from a small JSON file:

    {
      "groups":   [{"id": 1, "name": "Tontine Bastille", "members": ["u1", "u2"]}],
      "profiles": [{"id": "u1", "name": "Awa Diallo"}]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from tontine_geo.collaborators.memory import InMemoryMembershipRoster, InMemoryNameDirectory
from tontine_geo.core.env import resolve_project_path
from tontine_geo.domain.models import GroupId, UserId


class _GroupEntry(BaseModel):
    id: GroupId
    name: str
    members: list[UserId] = Field(default_factory=list)


class _ProfileEntry(BaseModel):
    id: UserId
    name: str


class _DirectoryFile(BaseModel):
    groups: list[_GroupEntry] = Field(default_factory=list)
    profiles: list[_ProfileEntry] = Field(default_factory=list)


@dataclass(frozen=True)
class LocalDirectory:
    roster: InMemoryMembershipRoster
    groups: InMemoryNameDirectory
    profiles: InMemoryNameDirectory


def load_directory(path: str | Path | None) -> LocalDirectory:
    """Load the directory file; a missing (or unset) path yields an empty directory."""
    data = _DirectoryFile()
    if path:
        resolved = resolve_project_path(path)
        if resolved.exists():
            data = _DirectoryFile.model_validate(json.loads(resolved.read_text(encoding="utf-8")))

    roster = InMemoryMembershipRoster({g.id: g.members for g in data.groups})
    groups = InMemoryNameDirectory({g.id: g.name for g in data.groups}, what="group")
    profiles = InMemoryNameDirectory({p.id: p.name for p in data.profiles}, what="user")
    return LocalDirectory(roster=roster, groups=groups, profiles=profiles)
