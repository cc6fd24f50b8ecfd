"""
Opinion Resolution

Decides which opinion governs each dispute for a computation:

    opinion = profile.selections[dispute_id] ?? registry.default_opinion(dispute_id)

and records every dispute consulted so results can explain themselves.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import UnknownOpinionError
from ..models.enums import OpinionSource
from ..models.profile import OpinionProfile
from ..models.registry import Registry


logger = logging.getLogger(__name__)

DEFAULT_PROFILE_ID = "default"


def create_default_opinion_profile(registry: Registry) -> OpinionProfile:
    """
    Build a profile that selects every dispute's declared default opinion.

    Example:
        profile = create_default_opinion_profile(registry)
        profile.selections["yesh-zikah"]  # 'yesh-zikah'
    """
    return OpinionProfile(
        id=DEFAULT_PROFILE_ID,
        name="Default",
        selections={d.id: d.default_opinion_id for d in registry.disputes},
        description=f"Declared default opinions of registry '{registry.id}'",
    )


def empty_profile() -> OpinionProfile:
    """A profile with no selections; every dispute falls back to its default."""
    return OpinionProfile(id="registry-defaults", name="Registry defaults")


def effective_opinion(
    registry: Registry,
    profile: OpinionProfile,
    dispute_id: str,
) -> tuple[str, OpinionSource]:
    """
    The opinion governing dispute_id and where it came from.

    Raises:
        DisputeNotFoundError: dispute_id is not in the registry
        UnknownOpinionError: the profile selects an opinion the dispute lacks
    """
    dispute = registry.dispute(dispute_id)
    selected = profile.selection_for(dispute_id)
    if selected is None:
        return dispute.default_opinion_id, OpinionSource.DEFAULT
    if not dispute.has_opinion(selected):
        raise UnknownOpinionError(
            message=f"Profile '{profile.id}' selects unknown opinion '{selected}' "
                    f"for dispute '{dispute_id}'",
            details={
                "profile_id": profile.id,
                "dispute_id": dispute_id,
                "opinion_id": selected,
                "valid_opinions": list(dispute.opinion_ids),
            },
        )
    return selected, OpinionSource.PROFILE


def unknown_selections(registry: Registry, profile: OpinionProfile) -> list[str]:
    """Dispute ids the profile selects but the registry does not define."""
    return [d for d in profile.selections if registry.get_dispute(d) is None]


@dataclass
class _Consulted:
    opinion_id: str
    source: OpinionSource
    rule_ids: list[str] = field(default_factory=list)


class OpinionLedger:
    """
    Per-computation record of consulted disputes.

    Opinions are resolved once per dispute and remembered in first-consulted
    order; every rule that consults a dispute is listed against it.
    """

    def __init__(self, registry: Registry, profile: OpinionProfile):
        self.registry = registry
        self.profile = profile
        self._consulted: dict[str, _Consulted] = {}
        stray = unknown_selections(registry, profile)
        if stray:
            logger.warning(
                "Profile '%s' selects disputes unknown to registry '%s': %s",
                profile.id, registry.id, ", ".join(stray),
                extra={"profile_id": profile.id, "registry_id": registry.id},
            )

    def consult(self, dispute_id: str, rule_id: Optional[str] = None) -> str:
        """Resolve the governing opinion for dispute_id and record the consultation."""
        entry = self._consulted.get(dispute_id)
        if entry is None:
            opinion_id, source = effective_opinion(self.registry, self.profile, dispute_id)
            entry = _Consulted(opinion_id=opinion_id, source=source)
            self._consulted[dispute_id] = entry
        if rule_id is not None and rule_id not in entry.rule_ids:
            entry.rule_ids.append(rule_id)
        return entry.opinion_id

    def consulted(self) -> list[tuple[str, str, OpinionSource, tuple[str, ...]]]:
        """(dispute id, opinion id, source, rule ids) in first-consulted order."""
        return [
            (dispute_id, e.opinion_id, e.source, tuple(e.rule_ids))
            for dispute_id, e in self._consulted.items()
        ]
