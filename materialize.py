"""
Container build-step entry point.

Runs inside the Nix stage of a multi-stage container build: builds the
configured packages, writes their profile into PROFILE_DIR and exports their
closure into CLOSURE_DIR. The final stage copies both trees onto the
development image and appends PROFILE_DIR to PATH.

Environment Variables:
    PACKAGES_STRING, PACKAGE_REGISTRY, BASE_PACKAGES, ADDITIONAL_PACKAGES,
    PROFILE_DIR, CLOSURE_DIR, NIX_BUILD_TIMEOUT, NIX_STORE_TIMEOUT, LOG_LEVEL

Example:
    $ PACKAGES_STRING="nixpkgs#helix nixpkgs#ripgrep" python materialize.py
"""

import logging
import os
import sys

from yadt.builder import export_closure
from yadt.config import config
from yadt.errors import MaterializeError
from yadt.materializer import ProfileMaterializer
from yadt.profile import link_profile

logger = logging.getLogger(__name__)


def main(materializer=None) -> int:
    """Materialize the configured profile and closure. Returns an exit code."""
    materializer = materializer or ProfileMaterializer()
    requests = config.all_packages()

    logger.info(f"Configuration: {config}")
    logger.info(f"Requested packages: {' '.join(requests)}")

    try:
        if os.path.exists(config.PROFILE_DIR) and os.listdir(config.PROFILE_DIR):
            raise MaterializeError(f"Profile directory is not empty: {config.PROFILE_DIR}")
        # Resolve and compute the closure before touching the filesystem
        result = materializer.materialize(requests)
        os.makedirs(config.PROFILE_DIR, exist_ok=True)
        links = link_profile(result.plan, config.PROFILE_DIR)
        try:
            export_closure(result.closure, config.CLOSURE_DIR)
        except MaterializeError:
            for link in links:
                os.unlink(link)
            raise
    except MaterializeError as e:
        logger.error(f"Materialization failed: {e}")
        return 1

    logger.info(
        f"Materialized {len(result.profile)} binaries into {config.PROFILE_DIR} "
        f"and {len(result.closure)} store paths into {config.CLOSURE_DIR}"
    )
    logger.info(f"Profile digest: {result.digest}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    sys.exit(main())
