"""
Profile construction for the profile materializer.

A profile is a flat directory of symlinks, one per executable name, pointing
into the `bin/` directories of resolved build outputs. The entry mapping is
computed first as a pure fold over the outputs in request order, then
written to disk in one pass.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .errors import ProfileError

logger = logging.getLogger(__name__)

BIN_DIR = "bin"


@dataclass(frozen=True)
class ProfileEntry:
    """A single profile symlink: `name` resolves to `source`."""

    name: str
    source: str
    output: str


@dataclass(frozen=True)
class Collision:
    """A binary that lost to an earlier output with the same name."""

    name: str
    kept: str
    discarded: str


@dataclass
class ProfilePlan:
    entries: Dict[str, ProfileEntry]
    collisions: List[Collision]

    def mapping(self) -> Dict[str, str]:
        """Return the plan as a plain name -> source mapping."""
        return {name: entry.source for name, entry in self.entries.items()}


def list_binaries(output: str) -> List[str]:
    """
    Return the direct entries of an output's binary directory.

    Outputs without a `bin/` directory yield an empty list. Subdirectories
    of `bin/` are not descended into; the entries are sorted by name.
    """
    bin_dir = os.path.join(output, BIN_DIR)
    if not os.path.isdir(bin_dir):
        logger.debug(f"No {BIN_DIR}/ directory in {output}, skipping")
        return []
    return [os.path.join(bin_dir, name) for name in sorted(os.listdir(bin_dir))]


def plan_profile(outputs: Sequence[str]) -> ProfilePlan:
    """
    Fold build outputs into a collision-resolved profile mapping.

    The first output that provides a name keeps it; later candidates are
    recorded as collisions and otherwise ignored.
    """
    entries: Dict[str, ProfileEntry] = {}
    collisions: List[Collision] = []

    for output in outputs:
        for source in list_binaries(output):
            name = os.path.basename(source)
            existing = entries.get(name)
            if existing is not None:
                collisions.append(Collision(name, existing.source, source))
                continue
            entries[name] = ProfileEntry(name, source, output)

    return ProfilePlan(entries, collisions)


def link_profile(plan: ProfilePlan, profile_dir: str) -> List[str]:
    """
    Materialize a profile plan as symlinks inside `profile_dir`.

    The directory must already exist and be empty. If a link cannot be
    created the links written so far are removed before ProfileError is
    raised, so no half-populated profile is left behind.

    Returns:
        Paths of the created links, in plan order
    """
    if not os.path.isdir(profile_dir):
        raise ProfileError(f"Profile directory does not exist: {profile_dir}")
    if os.listdir(profile_dir):
        raise ProfileError(f"Profile directory is not empty: {profile_dir}")

    created = []
    for name, entry in plan.entries.items():
        link = os.path.join(profile_dir, name)
        try:
            os.symlink(entry.source, link)
        except OSError as e:
            logger.error(f"Failed to link {link} -> {entry.source}: {e}")
            for path in created:
                os.unlink(path)
            raise ProfileError(f"Failed to link {name}: {e}") from e
        created.append(link)

    logger.debug(f"Linked {len(created)} binaries into {profile_dir}")
    return created


def read_profile(profile_dir: str) -> Dict[str, str]:
    """Read back a materialized profile as a name -> link target mapping."""
    profile: Dict[str, str] = {}
    for name in sorted(os.listdir(profile_dir)):
        path = os.path.join(profile_dir, name)
        if os.path.islink(path):
            profile[name] = os.readlink(path)
    return profile


def build_profile(outputs: Sequence[str], profile_dir: Optional[str] = None) -> ProfilePlan:
    """
    Plan a profile for `outputs` and, when `profile_dir` is given, write it.
    """
    plan = plan_profile(outputs)
    if profile_dir is not None:
        link_profile(plan, profile_dir)
    return plan
