"""
Environment admission control for seeders.

Skips are decisions, not errors: the orchestrator records the reason and the
run continues with the next seeder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from seedflow.config import Settings
from seedflow.domain.errors import UnknownSeederError
from seedflow.seeding.abstract import Seeder


def same_environment(left: str, right: str) -> bool:
    return left.casefold() == right.casefold()


@dataclass(frozen=True)
class SeedingProfile:
    """
    Operator-level filter on top of each seeder's own policy.

    `enabled_seeders=None` means no filtering. When a list is given only the
    named seeders run, and naming a seeder lifts its environment allow-list.
    `strict_mode` without an enabled list admits nothing.
    """

    enabled_seeders: Optional[FrozenSet[str]] = None
    strict_mode: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "SeedingProfile":
        enabled = settings.seeding_enabled_seeders
        return cls(
            enabled_seeders=frozenset(enabled) if enabled is not None else None,
            strict_mode=settings.seeding_strict_mode,
        )

    def validate(self, catalog_names: Iterable[str]) -> None:
        if self.enabled_seeders is None:
            return
        unknown = self.enabled_seeders - set(catalog_names)
        if unknown:
            raise UnknownSeederError(unknown)


@dataclass(frozen=True)
class GateDecision:
    admitted: bool
    reason: Optional[str] = None


ADMIT = GateDecision(admitted=True)


def evaluate(
    seeder: Seeder,
    environment: str,
    production_environment: str = "Production",
    profile: Optional[SeedingProfile] = None,
) -> GateDecision:
    """Decide whether `seeder` may run under `environment`."""
    policy = seeder.policy
    if same_environment(environment, production_environment) and not policy.production_safe:
        return GateDecision(False, f"not production-safe (environment '{environment}')")

    explicitly_enabled = False
    if profile is not None:
        if profile.enabled_seeders is None:
            if profile.strict_mode:
                return GateDecision(False, "strict mode is on and no seeders are enabled")
        elif seeder.name in profile.enabled_seeders:
            explicitly_enabled = True
        else:
            return GateDecision(False, "not enabled in seeding profile")

    if policy.allowed_environments and not explicitly_enabled:
        if not any(same_environment(environment, allowed) for allowed in policy.allowed_environments):
            allowed = ", ".join(sorted(policy.allowed_environments))
            return GateDecision(False, f"environment '{environment}' not in allow-list ({allowed})")

    return ADMIT


__all__ = ["ADMIT", "GateDecision", "SeedingProfile", "evaluate", "same_environment"]
