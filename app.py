"""
Profile materialization service with on-demand Nix builds.

Builds requested Nix packages when asked, computes their runtime closure and
materializes a flat profile of their binaries with first-writer-wins
collision handling.

Architecture:
    1. Client posts a package list (POST /v1/profiles)
    2. Service validates and qualifies each reference (helix -> nixpkgs#helix)
    3. Service builds the whole batch with Nix, all or nothing
    4. Service computes the union of the outputs' runtime closures
    5. Service links every bin/ entry into a fresh profile directory,
       the earliest request winning each name
    6. Service returns outputs, closure, profile mapping and digest

Endpoints:
    - GET /v1/ - Version check
    - GET /v1/packages - Default request list
    - POST /v1/profiles - Materialize a profile

Environment Variables:
    LOG_LEVEL, FLASK_HOST, FLASK_PORT, PACKAGE_REGISTRY, BASE_PACKAGES,
    ADDITIONAL_PACKAGES, PACKAGES_STRING, NIX_BUILD_TIMEOUT, NIX_STORE_TIMEOUT,
    WORK_DIR, MAX_PROFILES, MAX_PACKAGE_REF_LENGTH, MAX_PACKAGES

Example:
    $ LOG_LEVEL=DEBUG python app.py
    $ curl -X POST -H 'Content-Type: application/json' \\
        -d '{"packages": "helix ripgrep"}' localhost:6443/v1/profiles

See README.md for full documentation.
"""

import logging

from yadt.config import config
from yadt.routes import app

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the profile service."""
    debug_mode = logger.getEffectiveLevel() == logging.DEBUG
    logger.info(f"Starting profile service on {config.FLASK_HOST}:{config.FLASK_PORT}")
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")
    if debug_mode:
        logger.info("Flask debug mode enabled")
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=debug_mode)


if __name__ == "__main__":
    main()
