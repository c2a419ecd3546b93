"""UI-agnostic CoNLL-U sentence editing engine."""

__all__ = [
    "adapters",
    "runtime",
    "state",
    "tree",
]

__version__ = "0.1.0"
