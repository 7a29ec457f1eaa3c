"""
Configuration module for the profile materializer.

Loads all configuration from environment variables with sensible defaults.
"""

import os

# Adapted from distrobox-init and the devcontainers common-utils feature.
DEFAULT_BASE_PACKAGES = [
    "bash",
    "bash-completion",
    "bc",
    "curl",
    "diffutils",
    "findutils",
    "glibc",
    "gnupg",
    "iputils",
    "inetutils",
    "keyutils",
    "less",
    "lsof",
    "man",
    "mlocate",
    "mtr",
    "ncurses",
    "nssmdns",
    "openssh",
    "pigz",
    "pinentry-tty",
    "procps",
    "rsync",
    "shadow",
    "sudo",
    "tcpdump",
    "time",
    "traceroute",
    "tree",
    "tzdata",
    "unzip",
    "util-linux",
    "wget",
    "zip",
]


def _split_env_list(value: str) -> list:
    """Split a whitespace- or comma-separated environment value into tokens."""
    return [token for token in value.replace(",", " ").split() if token]


class Config:
    """
    Materializer configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    All settings can be overridden by setting the corresponding environment variable.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            FLASK_HOST: Server bind address. Default: 0.0.0.0
            FLASK_PORT: Server bind port. Default: 6443
            PACKAGE_REGISTRY: Flake prefixed to bare package names. Default: nixpkgs
            BASE_PACKAGES: Packages always requested first. Default: built-in list
            ADDITIONAL_PACKAGES: Packages requested after the base. Default: empty
            PACKAGES_STRING: Explicit request list, replaces base + additional. Default: empty
            NIX_BUILD_TIMEOUT: Build timeout in seconds. Default: 600
            NIX_STORE_TIMEOUT: Closure query timeout in seconds. Default: 120
            PROFILE_DIR: Profile directory for the build step. Default: /yadt-bin
            CLOSURE_DIR: Closure export directory. Default: /tmp/nix-store-closure
            WORK_DIR: Scratch root for service materializations. Default: /tmp/yadt
            MAX_PROFILES: Service work directories kept before the oldest are pruned. Default: 20
            MAX_PACKAGE_REF_LENGTH: Maximum package reference length. Default: 255
            MAX_PACKAGES: Maximum packages per request. Default: 256
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
        self.FLASK_PORT = int(os.getenv("FLASK_PORT", "6443"))

        # Packages
        self.PACKAGE_REGISTRY = os.getenv("PACKAGE_REGISTRY", "nixpkgs")
        base = os.getenv("BASE_PACKAGES")
        self.BASE_PACKAGES = (
            _split_env_list(base) if base is not None else list(DEFAULT_BASE_PACKAGES)
        )
        self.ADDITIONAL_PACKAGES = _split_env_list(os.getenv("ADDITIONAL_PACKAGES", ""))
        self.PACKAGES_STRING = os.getenv("PACKAGES_STRING", "")

        # Nix
        self.NIX_BUILD_TIMEOUT = int(os.getenv("NIX_BUILD_TIMEOUT", "600"))  # seconds
        self.NIX_STORE_TIMEOUT = int(os.getenv("NIX_STORE_TIMEOUT", "120"))  # seconds

        # Output locations
        self.PROFILE_DIR = os.getenv("PROFILE_DIR", "/yadt-bin")
        self.CLOSURE_DIR = os.getenv("CLOSURE_DIR", "/tmp/nix-store-closure")
        self.WORK_DIR = os.getenv("WORK_DIR", "/tmp/yadt")
        self.MAX_PROFILES = int(os.getenv("MAX_PROFILES", "20"))

        # Validation limits
        self.MAX_PACKAGE_REF_LENGTH = int(os.getenv("MAX_PACKAGE_REF_LENGTH", "255"))
        self.MAX_PACKAGES = int(os.getenv("MAX_PACKAGES", "256"))

    def all_packages(self) -> list:
        """
        Return the full ordered request list.

        PACKAGES_STRING wins when set. Otherwise the base packages come first,
        followed by additional packages not already listed. Bare names are
        qualified with PACKAGE_REGISTRY.

        The order matters: profile collisions are resolved in favour of the
        earliest request.
        """
        if self.PACKAGES_STRING.strip():
            names = _split_env_list(self.PACKAGES_STRING)
        else:
            names = self.BASE_PACKAGES + self.ADDITIONAL_PACKAGES

        packages = []
        for name in names:
            ref = self.qualify(name)
            if ref not in packages:
                packages.append(ref)
        return packages

    def qualify(self, name: str) -> str:
        """Prefix a bare package name with the configured registry flake."""
        if "#" in name or name.startswith("/"):
            return name
        return f"{self.PACKAGE_REGISTRY}#{name}"

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"FLASK_HOST={self.FLASK_HOST}, "
            f"FLASK_PORT={self.FLASK_PORT}, "
            f"PACKAGE_REGISTRY={self.PACKAGE_REGISTRY}, "
            f"PROFILE_DIR={self.PROFILE_DIR}, "
            f"CLOSURE_DIR={self.CLOSURE_DIR})"
        )


# Global config instance
config = Config()
