import os
from dataclasses import dataclass
from typing import Optional

RIVET_ERROR_CONTEXT_LINES = int(os.environ.get("RIVET_ERROR_CONTEXT_LINES", "1"))
RIVET_ERROR_LINE_NUMBERS = os.environ.get("RIVET_ERROR_LINE_NUMBERS", "1") == "1"

# width of integer literals and of outputs whose type cannot be inferred
RIVET_DEFAULT_INT_WIDTH = int(os.environ.get("RIVET_DEFAULT_INT_WIDTH", "256"))
if RIVET_DEFAULT_INT_WIDTH < 1:
    raise ValueError(f"RIVET_DEFAULT_INT_WIDTH must be positive, got {RIVET_DEFAULT_INT_WIDTH}")

RIVET_REPORT_COLUMN_WIDTH = int(os.environ.get("RIVET_REPORT_COLUMN_WIDTH", "30"))

RIVET_WARNINGS: Optional[str] = os.environ.get("RIVET_WARNINGS")


@dataclass
class Settings:
    check: bool = True
    annotate: bool = False
    warnings_control: Optional[str] = None

    def __post_init__(self):
        if self.warnings_control not in (None, "error", "none"):
            raise ValueError(f"unrecognized warnings control: {self.warnings_control}")

    @classmethod
    def from_env(cls, **overrides):
        ret = cls(warnings_control=RIVET_WARNINGS)
        for k, v in overrides.items():
            if v is not None:
                setattr(ret, k, v)
        ret.__post_init__()
        return ret
