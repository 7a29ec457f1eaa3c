import os

import pytest

from yadt.errors import ClosureError, ResolutionError
from yadt.materializer import ProfileMaterializer


class FakeStore:
    """
    In-memory package builder and closure computer over a fake store.

    Outputs are real directories under `root` so the profile fold can read
    their bin/ directories.
    """

    def __init__(self, root):
        self.root = root
        self.root.mkdir()
        self.packages = {}
        self.deps = {}
        self.build_calls = []
        self.closure_calls = []

    def add(self, name, binaries=None, deps=()):
        """Create an output; binaries=None means no bin/ directory at all."""
        output = self.root / f"{len(self.deps):032d}-{name}"
        output.mkdir()
        if binaries is None:
            (output / "share" / "doc").mkdir(parents=True)
        else:
            bin_dir = output / "bin"
            bin_dir.mkdir()
            for binary in binaries:
                script = bin_dir / binary
                script.write_text(f"#!/bin/sh\necho {name} {binary}\n")
                script.chmod(0o755)

        path = str(output)
        self.packages[name] = path
        self.packages[f"nixpkgs#{name}"] = path
        self.deps[path] = list(deps)
        return path

    def build(self, refs):
        self.build_calls.append(list(refs))
        unknown = [ref for ref in refs if ref not in self.packages]
        if unknown:
            raise ResolutionError(f"Failed to build packages: {' '.join(unknown)}", refs)
        return [self.packages[ref] for ref in refs]

    def closure(self, outputs):
        self.closure_calls.append(list(outputs))
        missing = [path for path in outputs if not os.path.exists(path)]
        if missing:
            raise ClosureError(f"Invalid build outputs: {' '.join(missing)}", missing)
        result = set(outputs)
        for output in outputs:
            result.update(self.deps[output])
        return frozenset(result)


@pytest.fixture
def store(tmp_path):
    return FakeStore(tmp_path / "store")


@pytest.fixture
def materializer(store):
    return ProfileMaterializer(build=store.build, closure=store.closure)


@pytest.fixture
def profile_dir(tmp_path):
    path = tmp_path / "profile"
    path.mkdir()
    return str(path)
