"""
Input validation module for the profile materializer.

Provides validation functions for package references and request lists.
"""

import hashlib
import logging
import re

from .config import config
from .errors import ValidationError

logger = logging.getLogger(__name__)

PACKAGE_REF_PATTERN = re.compile(r"^[a-zA-Z0-9._+/:#@-]+$")


def compute_sha256(data: bytes) -> str:
    """
    Compute SHA256 digest in OCI/Docker format.

    Args:
        data: Bytes to hash

    Returns:
        String in format "sha256:<64 hex chars>"

    Example:
        >>> compute_sha256(b"hello")
        'sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    h = hashlib.sha256()
    h.update(data)
    return "sha256:" + h.hexdigest()


def validate_package_ref(ref: str) -> None:
    """
    Validate a package reference before it reaches a subprocess argv.

    Args:
        ref: Package reference (e.g., "helix", "nixpkgs#helix", "github:owner/repo#pkg")

    Raises:
        ValidationError: if the reference is empty, too long or contains
            characters outside the allowed set

    Validation Rules:
        - Must be 1-{MAX_PACKAGE_REF_LENGTH} characters (configurable)
        - Only alphanumeric characters and . _ + / : # @ -
        - Must not start with "-" so it is never parsed as a nix option

    Examples:
        >>> validate_package_ref("nixpkgs#helix")  # OK
        >>> validate_package_ref("helix;rm -rf")  # Raises (semicolon)
    """
    if not ref or len(ref) > config.MAX_PACKAGE_REF_LENGTH:
        logger.warning(f"Invalid package reference length: {len(ref or '')}")
        raise ValidationError(
            f"Invalid package reference: must be 1-{config.MAX_PACKAGE_REF_LENGTH} characters"
        )

    if not PACKAGE_REF_PATTERN.match(ref) or ref.startswith("-"):
        logger.warning(f"Invalid package reference format: {ref}")
        raise ValidationError(f"Invalid package reference: {ref!r}")

    logger.debug(f"Package reference validated: {ref}")


def parse_package_list(value) -> list:
    """
    Parse an ordered request list.

    Accepts either a single string of whitespace- or comma-separated tokens
    or a sequence of strings. Empty tokens are dropped, order is kept and
    later duplicates are discarded.

    Raises:
        ValidationError: if the value has the wrong type or the list exceeds MAX_PACKAGES

    Examples:
        >>> parse_package_list("helix, ripgrep git")
        ['helix', 'ripgrep', 'git']
        >>> parse_package_list(["helix", "helix"])
        ['helix']
    """
    if isinstance(value, str):
        tokens = value.replace(",", " ").split()
    elif isinstance(value, (list, tuple)):
        tokens = []
        for item in value:
            if not isinstance(item, str):
                raise ValidationError(f"Package references must be strings, got {type(item).__name__}")
            tokens.extend(item.replace(",", " ").split())
    else:
        raise ValidationError("Packages must be a string or a list of strings")

    packages = []
    for token in tokens:
        if token not in packages:
            packages.append(token)

    if len(packages) > config.MAX_PACKAGES:
        logger.warning(f"Too many packages requested: {len(packages)}")
        raise ValidationError(f"Too many packages: at most {config.MAX_PACKAGES} allowed")

    return packages
