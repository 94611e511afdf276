"""Exception hierarchy shared by the scanner, policy and cache layers."""

from __future__ import annotations


class AnsibleSecError(Exception):
    """Base class for all ansiblesec errors."""


class ConfigError(AnsibleSecError):
    """Configuration file could not be loaded or is malformed."""


class RuleValidationError(AnsibleSecError):
    """A policy rule failed structural validation."""


class PatternError(AnsibleSecError):
    """A secret pattern is malformed or its expression fails to compile."""


class ScanError(AnsibleSecError):
    """The scan root is unusable."""


class CacheError(AnsibleSecError):
    """A cached result could not be used."""


class CacheMiss(CacheError):
    """No entry exists for the requested file."""


class HashMismatch(CacheError):
    """The file changed since its entry was written."""
