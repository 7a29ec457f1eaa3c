"""
Profile materialization pipeline.

Ties the Nix collaborators and the profile fold together:

    requests -> resolve -> outputs -> compute_closure -> closure
                                   -> build_profile   -> profile directory

Resolution completes before anything else runs. The closure is computed
before any profile link is written, so a fatal error at either step leaves
no artifacts behind.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence

from . import builder
from .errors import ClosureError, ResolutionError
from .profile import ProfilePlan, build_profile, link_profile
from .validation import compute_sha256, validate_package_ref

logger = logging.getLogger(__name__)


@dataclass
class Materialization:
    """Result of a successful materialization."""

    requests: List[str]
    outputs: List[str]
    closure: FrozenSet[str]
    plan: ProfilePlan
    profile_dir: Optional[str] = None
    links: List[str] = field(default_factory=list)

    @property
    def profile(self) -> Dict[str, str]:
        return self.plan.mapping()

    @property
    def digest(self) -> str:
        """Fingerprint of the profile mapping; changes with request order."""
        lines = "".join(f"{name}\t{source}\n" for name, source in sorted(self.profile.items()))
        return compute_sha256(lines.encode("utf-8"))

    def to_dict(self) -> dict:
        return {
            "requests": self.requests,
            "outputs": self.outputs,
            "closure": sorted(self.closure),
            "profile": self.profile,
            "profile_dir": self.profile_dir,
            "collisions": [
                {"name": c.name, "kept": c.kept, "discarded": c.discarded}
                for c in self.plan.collisions
            ],
            "digest": self.digest,
        }


class ProfileMaterializer:
    """
    Resolve package requests and materialize their closure and profile.

    Args:
        build: Package builder, maps an ordered list of references to output
            paths or raises ResolutionError. Defaults to `nix build`.
        closure: Closure computer, maps output paths to the set of their
            runtime dependencies or raises ClosureError. Defaults to
            `nix-store --query --requisites`.
    """

    def __init__(
        self,
        build: Callable[[List[str]], List[str]] = builder.run_nix_build,
        closure: Callable[[List[str]], FrozenSet[str]] = builder.query_closure,
    ):
        self._build = build
        self._closure = closure

    def resolve(self, requests: Sequence[str]) -> List[str]:
        """
        Resolve requests to build outputs, all or nothing.

        Raises:
            ValidationError: if a request is malformed
            ResolutionError: if any request fails to build
        """
        requests = list(requests)
        for ref in requests:
            validate_package_ref(ref)

        outputs = list(self._build(requests))
        if requests and not outputs:
            raise ResolutionError("Package builder returned no outputs", requests)

        logger.info(f"Resolved {len(requests)} request(s) to {len(outputs)} output(s)")
        return outputs

    def compute_closure(self, outputs: Sequence[str]) -> FrozenSet[str]:
        """
        Return the union of the runtime closures of `outputs`.

        Raises:
            ClosureError: if the closure computer fails or omits an output
        """
        closure = frozenset(self._closure(list(outputs)))
        missing = [path for path in outputs if path not in closure]
        if missing:
            raise ClosureError(f"Closure does not contain its own outputs: {' '.join(missing)}", missing)
        return closure

    def build_profile(self, outputs: Sequence[str], profile_dir: Optional[str] = None) -> ProfilePlan:
        """
        Build the collision-resolved profile for `outputs`.

        Collisions are resolved first-writer-wins and logged here; they
        never fail the build.
        """
        plan = build_profile(outputs, profile_dir)
        for collision in plan.collisions:
            logger.info(
                f"Binary '{collision.name}' already provided by {collision.kept}, "
                f"ignoring {collision.discarded}"
            )
        logger.info(f"Profile planned: {len(plan.entries)} binaries from {len(outputs)} output(s)")
        return plan

    def materialize(self, requests: Sequence[str], profile_dir: Optional[str] = None) -> Materialization:
        """
        Run the whole pipeline for `requests`.

        When `profile_dir` is given it must already exist and be empty; the
        profile links are written there only after resolution and closure
        computation have both succeeded.

        Raises:
            ValidationError, ResolutionError, ClosureError, ProfileError
        """
        requests = list(requests)
        logger.info(f"Materializing profile for {len(requests)} request(s)")

        outputs = self.resolve(requests)
        closure = self.compute_closure(outputs)
        plan = self.build_profile(outputs)

        links = []
        if profile_dir is not None:
            links = link_profile(plan, profile_dir)
            logger.info(f"Profile written to {profile_dir}")

        return Materialization(
            requests=requests,
            outputs=outputs,
            closure=closure,
            plan=plan,
            profile_dir=profile_dir,
            links=links,
        )
