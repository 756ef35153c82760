"""Name validation, flag, label-selector, token-scope, security-constraint and per-key lock helpers for API servers."""

__version__ = "0.1.0"

__all__ = [
    "apivalidation",
    "capabilities",
    "configflags",
    "field",
    "group",
    "labelselector",
    "lockfactory",
    "scope",
]