"""
java_runtime.py
===============
Data model for verified Java runtimes.

A ``JavaRuntime`` is produced by the prober once a candidate launcher has
answered a version probe.  Confidence is filled in later by the detector,
so instances are rebuilt with ``dataclasses.replace`` rather than mutated.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

# Windowless launcher used to open .jar files
LAUNCHER_NAME = "javaw.exe"


# ──────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────

class Vendor(str, Enum):
    """Best-effort vendor classification (derived from text, never verified)."""

    AZUL = "Azul"
    ADOPTIUM = "Adoptium"
    MICROSOFT = "Microsoft"
    ORACLE = "Oracle"
    CORRETTO = "Corretto"
    BELLSOFT = "BellSoft"
    AMAZON = "Amazon"
    UNKNOWN = "Unknown"


class Confidence(str, Enum):
    """How much we trust where a runtime was found."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def score(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


# ──────────────────────────────────────────────
#  Path helpers
# ──────────────────────────────────────────────

def canonical_path(path: str) -> str:
    """Return the absolute, normalised form of *path* (case preserved)."""
    return os.path.normpath(os.path.abspath(path))


def canonical_key(path: str) -> str:
    """Case-insensitive comparison key for a filesystem path."""
    return os.path.normcase(canonical_path(path)).casefold()


def dedupe_paths(paths) -> list:
    """Drop case-insensitive duplicates, keeping first-seen order."""
    seen: set = set()
    unique = []
    for p in paths:
        key = canonical_key(p)
        if key not in seen:
            seen.add(key)
            unique.append(p)
    return unique


# ──────────────────────────────────────────────
#  JavaRuntime Dataclass
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class JavaRuntime:
    """A Java installation that answered a version probe."""

    executable_path: str            # Absolute path to javaw.exe
    vendor: Vendor = Vendor.UNKNOWN
    major_version: int = 0          # 8, 11, 17, 21 ... never 0 once stored
    is_64bit: bool = True           # Path heuristic, see java_prober.is_64bit_path
    install_root: str = ""          # Grandparent of the launcher
    confidence: Confidence = Confidence.LOW

    def __post_init__(self) -> None:
        if self.major_version < 1:
            raise ValueError(
                f"major_version must be >= 1, got {self.major_version} for {self.executable_path}"
            )

    @property
    def key(self) -> str:
        return canonical_key(self.executable_path)

    @property
    def architecture(self) -> str:
        return "x64" if self.is_64bit else "x86"

    @property
    def bin_dir(self) -> str:
        return os.path.dirname(self.executable_path)

    def display_name(self) -> str:
        return (
            f"{self.vendor.value} {self.major_version} {self.architecture} "
            f"– {self.executable_path}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executable_path": self.executable_path,
            "vendor": self.vendor.value,
            "major_version": self.major_version,
            "architecture": self.architecture,
            "install_root": self.install_root,
            "confidence": self.confidence.value,
        }
