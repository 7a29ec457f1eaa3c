from yadt.config import DEFAULT_BASE_PACKAGES, Config

ENV_VARS = [
    "PACKAGE_REGISTRY",
    "BASE_PACKAGES",
    "ADDITIONAL_PACKAGES",
    "PACKAGES_STRING",
    "NIX_BUILD_TIMEOUT",
    "PROFILE_DIR",
]


def _clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clean_env(monkeypatch)

    cfg = Config()

    assert cfg.PACKAGE_REGISTRY == "nixpkgs"
    assert cfg.BASE_PACKAGES == DEFAULT_BASE_PACKAGES
    assert cfg.ADDITIONAL_PACKAGES == []
    assert cfg.NIX_BUILD_TIMEOUT == 600
    assert cfg.PROFILE_DIR == "/yadt-bin"
    assert cfg.all_packages()[0] == "nixpkgs#bash"
    assert len(cfg.all_packages()) == len(DEFAULT_BASE_PACKAGES)


def test_environment_overrides(monkeypatch):
    _clean_env(monkeypatch)
    monkeypatch.setenv("NIX_BUILD_TIMEOUT", "30")
    monkeypatch.setenv("PROFILE_DIR", "/opt/bin")

    cfg = Config()

    assert cfg.NIX_BUILD_TIMEOUT == 30
    assert cfg.PROFILE_DIR == "/opt/bin"


def test_all_packages_base_then_additional_without_duplicates(monkeypatch):
    _clean_env(monkeypatch)
    monkeypatch.setenv("BASE_PACKAGES", "bash coreutils")
    monkeypatch.setenv("ADDITIONAL_PACKAGES", "helix, bash, github:owner/repo#tool")

    cfg = Config()

    assert cfg.all_packages() == [
        "nixpkgs#bash",
        "nixpkgs#coreutils",
        "nixpkgs#helix",
        "github:owner/repo#tool",
    ]


def test_packages_string_replaces_configured_lists(monkeypatch):
    _clean_env(monkeypatch)
    monkeypatch.setenv("ADDITIONAL_PACKAGES", "helix")
    monkeypatch.setenv("PACKAGES_STRING", "nixpkgs#ripgrep nixpkgs#git")

    assert Config().all_packages() == ["nixpkgs#ripgrep", "nixpkgs#git"]


def test_empty_base_packages(monkeypatch):
    _clean_env(monkeypatch)
    monkeypatch.setenv("BASE_PACKAGES", "")
    monkeypatch.setenv("ADDITIONAL_PACKAGES", "helix")

    assert Config().all_packages() == ["nixpkgs#helix"]


def test_qualify(monkeypatch):
    _clean_env(monkeypatch)
    monkeypatch.setenv("PACKAGE_REGISTRY", "github:nixos/nixpkgs/nixos-22.11")

    cfg = Config()

    assert cfg.qualify("helix") == "github:nixos/nixpkgs/nixos-22.11#helix"
    assert cfg.qualify("nixpkgs#helix") == "nixpkgs#helix"
    assert cfg.qualify("/nix/store/0000-hello") == "/nix/store/0000-hello"
