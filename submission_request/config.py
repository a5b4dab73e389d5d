"""Runtime settings for the Submission Request workflow.

Settings are read from environment variables once and passed explicitly to
the components that need them:

    SUBMISSION_REQUEST_LOG_LEVEL    logging level name (default: INFO)
    SUBMISSION_REQUEST_LOG_FORMAT   "readable" or "json" (default: readable)
    SUBMISSION_REQUEST_PREFILL      "true"/"false", pre-fill new documents from
                                    the user's last submission (default: true)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

LOG_FORMATS = ("readable", "json")


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Configuration shared by the store and the logging setup."""

    log_level: str = "INFO"
    log_format: str = "readable"
    prefill_enabled: bool = True

    def __post_init__(self):
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got '{self.log_format}'")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            log_level=env.get("SUBMISSION_REQUEST_LOG_LEVEL", "INFO").upper(),
            log_format=env.get("SUBMISSION_REQUEST_LOG_FORMAT", "readable").lower(),
            prefill_enabled=_as_bool(env.get("SUBMISSION_REQUEST_PREFILL", "true")),
        )


__all__ = [
    "LOG_FORMATS",
    "Settings",
]
