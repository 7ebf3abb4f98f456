"""
Runtime configuration for trace-wrangler.

Defaults match the original loader (WAL journal, foreign keys on). The CLI
fills these fields from its options, which also read ``TRACE_WRANGLER_*``
environment variables.
"""

from dataclasses import dataclass, replace
from typing import Any

JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")


@dataclass(frozen=True)
class WranglerConfig:
    """Settings shared by the sinks, the normalizer and the CLI."""
    journal_mode: str = "WAL"
    foreign_keys: bool = True
    progress_every: int = 1000  # INFO progress line every N messages
    log_level: str = "INFO"

    def __post_init__(self):
        mode = self.journal_mode.upper()
        if mode not in JOURNAL_MODES:
            raise ValueError(f"Unknown journal_mode {self.journal_mode!r}")
        object.__setattr__(self, "journal_mode", mode)
        if self.progress_every < 1:
            raise ValueError("progress_every must be >= 1")
        object.__setattr__(self, "log_level", self.log_level.upper())

    def with_overrides(self, **overrides: Any) -> "WranglerConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self
