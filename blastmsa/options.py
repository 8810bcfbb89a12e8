# blastmsa/options.py
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

__all__ = ["AlignerOptions"]


@dataclass(slots=True)
class AlignerOptions:
    # References with fewer rows are dropped after loading; <= 1 disables the filter
    min_reads: int = 10

    # Keep only near-identical matches (identity >= min_identity, or unknown identity)
    use_identity_filter: bool = False
    min_identity: float = 97.0

    # Merge read insertions into shared alignment columns
    show_insertions: bool = False

    # Used when a match text declares no reference length
    default_length: int = 10000

    def __post_init__(self) -> None:
        if self.default_length < 1:
            raise ValueError("default_length must be >= 1")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "AlignerOptions":
        """
        Build options from string-valued key=value pairs (e.g. parsed from the
        command line). Unknown keys raise ValueError.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, raw in mapping.items():
            if key not in known:
                raise ValueError(f"unknown option {key!r}")
            default = known[key].default
            if isinstance(default, bool):
                kwargs[key] = raw if isinstance(raw, bool) else str(raw).strip().lower() in {"1", "true", "yes", "on"}
            elif isinstance(default, int):
                kwargs[key] = int(raw)
            elif isinstance(default, float):
                kwargs[key] = float(raw)
            else:
                kwargs[key] = raw
        return cls(**kwargs)
