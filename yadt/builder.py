"""
Nix builder module for the profile materializer.

Resolves package references to store paths with `nix build`, queries their
runtime closure with `nix-store` and exports that closure for image layering.
"""

import json
import logging
import os
import shutil
import subprocess
import tempfile
import threading

from .config import config
from .errors import ClosureError, ResolutionError

logger = logging.getLogger(__name__)


def run_nix_build(refs: list) -> list:
    """
    Build a batch of package references and return their output paths.

    Args:
        refs: Ordered package references (e.g., ["nixpkgs#helix", "nixpkgs#git"])

    Returns:
        Absolute store paths, grouped by request in request order. A request
        with several default outputs (e.g. "bin" and "man") contributes each
        of them, in the order nix reports them.

    Raises:
        ResolutionError: if any reference fails to build, the build times out,
            nix prints unreadable output or an output path is missing

    Behavior:
        - The whole batch is built by a single nix invocation, so one bad
          reference fails every request
        - In DEBUG mode: streams build logs line-by-line to logs
        - In normal mode: captures output silently
        - Respects NIX_BUILD_TIMEOUT configuration
    """
    if not refs:
        return []

    logger.info(f"Building {len(refs)} package(s) with Nix")

    nix_build_cmd = [
        "nix",
        "build",
        "--no-link",
        "--json",
        *refs,
    ]
    logger.debug(f"Running command: {' '.join(nix_build_cmd)}")

    # Stream logs in debug mode, capture in normal mode
    is_debug = logger.getEffectiveLevel() == logging.DEBUG

    try:
        if is_debug:
            # nix writes logs to stderr and the JSON result to stdout
            with tempfile.TemporaryFile(mode="w+") as stdout:
                process = subprocess.Popen(
                    nix_build_cmd,
                    stdout=stdout,
                    stderr=subprocess.PIPE,
                    text=True,
                    bufsize=1,  # Line buffered
                )

                # stderr only hits EOF when nix exits, so the deadline kills it
                killed = threading.Event()

                def kill_build():
                    killed.set()
                    process.kill()

                timer = threading.Timer(config.NIX_BUILD_TIMEOUT, kill_build)
                timer.start()
                try:
                    for line in process.stderr:
                        line = line.rstrip()
                        if line:  # Only log non-empty lines
                            logger.debug(f"[nix] {line}")

                    return_code = process.wait()
                finally:
                    timer.cancel()

                if killed.is_set():
                    raise subprocess.TimeoutExpired(nix_build_cmd, config.NIX_BUILD_TIMEOUT)

                if return_code != 0:
                    logger.error(f"Nix build failed with exit code {return_code}")
                    raise ResolutionError(f"Failed to build packages: {' '.join(refs)}", refs)

                stdout.seek(0)
                raw_output = stdout.read()
        else:
            # Normal mode: capture output without streaming
            nix_cmd = subprocess.run(
                nix_build_cmd,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=config.NIX_BUILD_TIMEOUT,
            )
            raw_output = nix_cmd.stdout.decode()

    except subprocess.TimeoutExpired:
        logger.error(f"Nix build timed out after {config.NIX_BUILD_TIMEOUT}s")
        raise ResolutionError(
            f"Build timeout: packages took longer than {config.NIX_BUILD_TIMEOUT}s to build",
            refs,
            timed_out=True,
        )
    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.decode() if e.stderr else ""
        logger.error(f"Nix build failed: {error_msg}")
        raise ResolutionError(f"Failed to build packages: {' '.join(refs)}", refs)
    except FileNotFoundError:
        logger.error("nix executable not found on PATH")
        raise ResolutionError("nix executable not found", refs)

    output_paths = parse_build_result(raw_output, refs)

    # Verify outputs exist
    for path in output_paths:
        if not os.path.exists(path):
            logger.error(f"Expected build output not found: {path}")
            raise ResolutionError(f"Expected build output not found: {path}", refs)

    logger.info(f"Build complete: {len(refs)} package(s), {len(output_paths)} output(s)")
    return output_paths


def parse_build_result(raw_output: str, refs: list) -> list:
    """
    Extract output paths from `nix build --json` output.

    Args:
        raw_output: JSON document printed by nix, a list with one entry per
            installable, each holding an "outputs" mapping of name to path
        refs: The references that were built, for error reporting

    Returns:
        Flat list of output paths in installable order

    Example:
        >>> parse_build_result('[{"outputs": {"out": "/nix/store/abc-helix"}}]', ["helix"])
        ['/nix/store/abc-helix']
    """
    try:
        results = json.loads(raw_output)
    except json.JSONDecodeError:
        logger.error(f"Nix build produced unreadable output: {raw_output[:200]!r}")
        raise ResolutionError("Failed to build packages: unreadable nix output", refs)

    if not isinstance(results, list) or len(results) != len(refs):
        logger.error(f"Nix build returned {len(results) if isinstance(results, list) else 'no'} results for {len(refs)} requests")
        raise ResolutionError("Failed to build packages: unexpected nix output", refs)

    output_paths = []
    for ref, result in zip(refs, results):
        outputs = result.get("outputs") if isinstance(result, dict) else None
        if not outputs and isinstance(result, dict) and result.get("path"):
            # Store path installables report a bare path instead of outputs
            outputs = {"path": result["path"]}
        if not outputs:
            logger.error(f"Nix build returned no outputs for {ref}")
            raise ResolutionError(f"Failed to build {ref}: no outputs", refs)
        for name, path in outputs.items():
            logger.debug(f"{ref} output {name}: {path}")
            if path not in output_paths:
                output_paths.append(path)

    return output_paths


def query_closure(outputs: list) -> frozenset:
    """
    Compute the union of the runtime closures of the given store paths.

    Args:
        outputs: Store paths returned by run_nix_build

    Returns:
        Frozen set of store paths, always including the outputs themselves

    Raises:
        ClosureError: if an output no longer exists or nix-store fails
    """
    if not outputs:
        return frozenset()

    missing = [path for path in outputs if not os.path.exists(path)]
    if missing:
        logger.error(f"Build outputs disappeared before closure query: {missing}")
        raise ClosureError(f"Invalid build outputs: {' '.join(missing)}", missing)

    nix_store_cmd = ["nix-store", "--query", "--requisites", *outputs]
    logger.debug(f"Running command: {' '.join(nix_store_cmd)}")

    try:
        nix_cmd = subprocess.run(
            nix_store_cmd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=config.NIX_STORE_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"Closure query timed out after {config.NIX_STORE_TIMEOUT}s")
        raise ClosureError("Closure query timed out", outputs)
    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.decode() if e.stderr else ""
        logger.error(f"Closure query failed: {error_msg}")
        raise ClosureError("Failed to compute closure", outputs)
    except FileNotFoundError:
        logger.error("nix-store executable not found on PATH")
        raise ClosureError("nix-store executable not found", outputs)

    closure = {line.strip() for line in nix_cmd.stdout.decode().splitlines() if line.strip()}
    closure.update(outputs)

    logger.info(f"Closure computed: {len(closure)} store path(s) for {len(outputs)} output(s)")
    return frozenset(closure)


def export_closure(closure, dest: str) -> list:
    """
    Copy every closure path into a destination directory.

    Each store path is copied to `dest/<basename>` with symlinks preserved,
    the equivalent of `cp -R $(nix-store -qR ...) dest`.

    Args:
        closure: Store paths to copy
        dest: Target directory; created when missing, must otherwise be empty

    Returns:
        Sorted list of copied destination paths

    Raises:
        ClosureError: if dest is not empty or a closure path cannot be copied;
            entries copied so far are removed first
    """
    if os.path.exists(dest) and os.listdir(dest):
        logger.error(f"Closure destination is not empty: {dest}")
        raise ClosureError(f"Closure destination is not empty: {dest}")
    os.makedirs(dest, exist_ok=True)

    copied = []
    for path in sorted(closure):
        target = os.path.join(dest, os.path.basename(path))
        logger.debug(f"Copying {path} -> {target}")
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.copytree(path, target, symlinks=True)
            else:
                shutil.copy2(path, target, follow_symlinks=False)
        except FileNotFoundError as e:
            logger.error(f"Closure path vanished during export: {path}")
            _remove_paths(copied + [target])
            raise ClosureError(f"Closure path not found: {path}", [path]) from e
        except OSError as e:
            # shutil.Error is an OSError too
            logger.error(f"Failed to export {path}: {e}")
            _remove_paths(copied + [target])
            raise ClosureError(f"Failed to export closure path {path}: {e}", [path]) from e
        copied.append(target)

    logger.info(f"Exported {len(copied)} store path(s) to {dest}")
    return copied


def _remove_paths(paths: list) -> None:
    """Remove partially exported closure entries."""
    for path in paths:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path, ignore_errors=True)
        elif os.path.lexists(path):
            os.unlink(path)
