import pytest

from yadt.config import config
from yadt.errors import ValidationError
from yadt.validation import compute_sha256, parse_package_list, validate_package_ref


def test_compute_sha256():
    assert compute_sha256(b"hello") == (
        "sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
    )


@pytest.mark.parametrize(
    "ref",
    [
        "helix",
        "nixpkgs#helix",
        "nixpkgs#python3Packages.flask",
        "github:nixos/nixpkgs/nixos-22.11#gcc",
        "/nix/store/0000-hello-2.12",
        "nixpkgs#libc++",
    ],
)
def test_validate_package_ref_accepts(ref):
    validate_package_ref(ref)


@pytest.mark.parametrize("ref", ["", "helix;rm -rf /", "$(whoami)", "--impure", "a b"])
def test_validate_package_ref_rejects(ref):
    with pytest.raises(ValidationError):
        validate_package_ref(ref)


def test_validate_package_ref_length_limit(monkeypatch):
    monkeypatch.setattr(config, "MAX_PACKAGE_REF_LENGTH", 8)

    validate_package_ref("a" * 8)
    with pytest.raises(ValidationError):
        validate_package_ref("a" * 9)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("helix ripgrep", ["helix", "ripgrep"]),
        ("helix,ripgrep, git", ["helix", "ripgrep", "git"]),
        ("  helix\n\tripgrep  ", ["helix", "ripgrep"]),
        (["helix", "ripgrep git"], ["helix", "ripgrep", "git"]),
        ("git helix git", ["git", "helix"]),
        ("", []),
        ([], []),
    ],
)
def test_parse_package_list(value, expected):
    assert parse_package_list(value) == expected


@pytest.mark.parametrize("value", [None, 42, {"helix": True}, ["helix", 3]])
def test_parse_package_list_rejects_wrong_types(value):
    with pytest.raises(ValidationError):
        parse_package_list(value)


def test_parse_package_list_limit(monkeypatch):
    monkeypatch.setattr(config, "MAX_PACKAGES", 2)

    with pytest.raises(ValidationError, match="Too many"):
        parse_package_list("a b c")
