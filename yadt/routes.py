"""
Flask application and profile endpoints.

Exposes on-demand profile materialization over HTTP.
"""

import logging
import os
import shutil
import tempfile

from flask import Flask, jsonify, request

from .config import config
from .errors import ClosureError, ProfileError, ResolutionError, ValidationError
from .materializer import ProfileMaterializer
from .validation import parse_package_list

logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)

# Replaced in tests with a materializer backed by fake collaborators
materializer = ProfileMaterializer()


def _error_response(status: int, error: str, message: str):
    resp = jsonify({"error": error, "message": message})
    resp.status_code = status
    return resp


def prune_work_dirs(keep: int) -> list:
    """
    Remove the oldest profile work directories, keeping the newest `keep`.

    Returns:
        Paths of the removed directories
    """
    if not os.path.isdir(config.WORK_DIR):
        return []
    work_dirs = [
        os.path.join(config.WORK_DIR, name)
        for name in os.listdir(config.WORK_DIR)
        if name.startswith("profile-")
    ]
    work_dirs.sort(key=os.path.getmtime)
    stale = work_dirs[: max(len(work_dirs) - max(keep, 0), 0)]
    for path in stale:
        logger.debug(f"Removing stale profile work directory: {path}")
        shutil.rmtree(path, ignore_errors=True)
    return stale


# -------------------------------
# Error Handlers
# -------------------------------


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    logger.warning(f"Rejected request: {e}")
    return _error_response(400, "invalid_request", str(e))


@app.errorhandler(ResolutionError)
def handle_resolution_error(e):
    if e.timed_out:
        return _error_response(504, "build_timeout", str(e))
    return _error_response(502, "resolution_failed", str(e))


@app.errorhandler(ClosureError)
def handle_closure_error(e):
    return _error_response(500, "closure_failed", str(e))


@app.errorhandler(ProfileError)
def handle_profile_error(e):
    return _error_response(500, "profile_failed", str(e))


# -------------------------------
# Profile Endpoints
# -------------------------------


@app.route("/v1/")
def v1_root():
    """
    Version check endpoint.

    Returns:
        JSON with the service name and API version
    """
    logger.info("Profile API root accessed")
    return jsonify({"service": "yadt", "api": "v1"})


@app.route("/v1/packages")
def get_packages():
    """
    Return the configured default request list.

    Returns:
        JSON: {"packages": ["nixpkgs#bash", ...]}
    """
    return jsonify({"packages": config.all_packages()})


@app.route("/v1/profiles", methods=["POST"])
def create_profile():
    """
    Build the requested packages and materialize their profile.

    Request Body (JSON, optional):
        {"packages": "helix ripgrep"} or {"packages": ["helix", "ripgrep"]}
        When omitted, the configured default request list is used.
        Bare names are qualified with PACKAGE_REGISTRY.

    Returns:
        201 with JSON:
        {
            "requests": [...],       # qualified references, in order
            "outputs": [...],        # resolved store paths, in order
            "closure": [...],        # sorted closure store paths
            "profile": {name: path}, # first-writer-wins symlink targets
            "profile_dir": str,      # fresh directory holding the links
            "collisions": [...],     # discarded candidates
            "digest": "sha256:..."   # fingerprint of the profile mapping
        }

    Raises:
        400: Invalid body or package reference
        500: Closure or profile failure
        502: A package failed to build
        504: Build timeout
    """
    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    if "packages" in body:
        requests = [config.qualify(ref) for ref in parse_package_list(body["packages"])]
    else:
        requests = config.all_packages()

    if not requests:
        raise ValidationError("No packages requested")

    logger.info(f"Profile requested for {len(requests)} package(s)")

    os.makedirs(config.WORK_DIR, exist_ok=True)
    prune_work_dirs(config.MAX_PROFILES - 1)
    work_dir = tempfile.mkdtemp(prefix="profile-", dir=config.WORK_DIR)
    profile_dir = os.path.join(work_dir, "profile")
    os.mkdir(profile_dir)

    try:
        result = materializer.materialize(requests, profile_dir)
    except Exception:
        os.rmdir(profile_dir)
        os.rmdir(work_dir)
        raise

    logger.info(f"Profile created: {profile_dir}, digest={result.digest}")
    resp = jsonify(result.to_dict())
    resp.status_code = 201
    return resp
