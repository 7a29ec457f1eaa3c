"""
Nix package profile materializer for development container images.

Builds a list of requested Nix packages, computes the transitive closure of
their store paths and merges every executable into a single flat directory
of symlinks (the profile). Both artifacts are then layered onto a base
container image by the container builder.

Features:
    - Batch package resolution with `nix build`, all or nothing
    - Runtime closure computation with `nix-store --query --requisites`
    - Closure export for multi-stage container builds
    - Flat profile of binaries with first-writer-wins collision handling
    - Configurable via environment variables
    - HTTP service for on-demand materialization
    - Real-time build output streaming in debug mode

Request Order:
    Profile collisions are resolved in favour of the earliest request. With
    requests ["pkg-a", "pkg-b"] where both ship bin/y, the profile links
    y -> pkg-a/bin/y.

See README.md for full documentation.
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config
from .errors import (
    MaterializeError,
    ValidationError,
    ResolutionError,
    ClosureError,
    ProfileError,
)
from .validation import compute_sha256, validate_package_ref, parse_package_list
from .builder import run_nix_build, query_closure, export_closure
from .profile import (
    ProfileEntry,
    ProfilePlan,
    plan_profile,
    link_profile,
    read_profile,
    build_profile,
)
from .materializer import Materialization, ProfileMaterializer

__all__ = [
    "Config",
    "MaterializeError",
    "ValidationError",
    "ResolutionError",
    "ClosureError",
    "ProfileError",
    "compute_sha256",
    "validate_package_ref",
    "parse_package_list",
    "run_nix_build",
    "query_closure",
    "export_closure",
    "ProfileEntry",
    "ProfilePlan",
    "plan_profile",
    "link_profile",
    "read_profile",
    "build_profile",
    "Materialization",
    "ProfileMaterializer",
]
