"""Runtime knobs for scans and fuzz runs."""

from dataclasses import dataclass
from typing import Optional

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_DELAY_MS = 100
MAX_RESPONSE_LENGTH = 2000


@dataclass
class ScannerConfig:
    response_timeout_ms: int = DEFAULT_TIMEOUT_MS
    probe_delay_ms: int = DEFAULT_DELAY_MS
    time_based_timeout_ms: int = 10000
    timing_threshold_ms: int = 4000
    max_display_length: int = MAX_RESPONSE_LENGTH
    fuzz_min_delay_ms: int = 100
    fuzz_max_delay_ms: int = 200
    fuzz_grace_seconds: float = 5.0
    connect_timeout: float = 10.0
    proxy: Optional[str] = None
    verbose: int = 1

    def __post_init__(self):
        if self.response_timeout_ms <= 0:
            raise ValueError("response timeout must be positive")
        if self.fuzz_min_delay_ms < 0 or self.fuzz_max_delay_ms < self.fuzz_min_delay_ms:
            raise ValueError(
                f"invalid fuzz delay range {self.fuzz_min_delay_ms}-{self.fuzz_max_delay_ms} ms")
        if self.fuzz_grace_seconds < 0:
            raise ValueError("grace window cannot be negative")

    @classmethod
    def from_args(cls, args) -> "ScannerConfig":
        """Build a config from an argparse namespace; missing options keep defaults."""
        cfg = {}
        for name in cls.__dataclass_fields__:
            value = getattr(args, name, None)
            if value is not None:
                cfg[name] = value
        return cls(**cfg)
