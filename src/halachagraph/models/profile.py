"""
Opinion Profiles

An OpinionProfile records which opinion a caller follows for each dispute.
Disputes the profile does not mention fall back to the registry default.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional


@dataclass(frozen=True)
class OpinionProfile:
    """
    A caller's chosen opinion per dispute.

    Attributes:
        id: Profile identifier
        name: Display name
        selections: dispute id -> opinion id
        description: Optional description
    """
    id: str
    name: str
    selections: Mapping[str, str] = field(default_factory=dict)
    description: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "selections", MappingProxyType(dict(self.selections)))

    def selection_for(self, dispute_id: str) -> Optional[str]:
        return self.selections.get(dispute_id)

    def with_selection(self, dispute_id: str, opinion_id: str) -> OpinionProfile:
        """Return a copy following opinion_id for dispute_id."""
        selections = dict(self.selections)
        selections[dispute_id] = opinion_id
        return OpinionProfile(
            id=self.id,
            name=self.name,
            selections=selections,
            description=self.description,
        )

    def without_selection(self, dispute_id: str) -> OpinionProfile:
        """Return a copy that defers to the registry default for dispute_id."""
        selections = {k: v for k, v in self.selections.items() if k != dispute_id}
        return OpinionProfile(
            id=self.id,
            name=self.name,
            selections=selections,
            description=self.description,
        )
