"""
java_prober.py
==============
Verify a candidate launcher by running it.

The candidate is started with ``-XshowSettings:properties -version`` and its
combined stdout/stderr is parsed for a major version and a vendor.  A probe
that does not finish within the timeout is killed (whole process tree) and
treated as "no runtime".  Nothing in here raises for a bad candidate.

Bitness is guessed from the install path only; the binary header is never
inspected, so a 32-bit JRE copied to a neutral folder reports as 64-bit.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from typing import Optional, Tuple

import psutil

from java_runtime import JavaRuntime, Vendor, canonical_path

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
#  Constants
# ──────────────────────────────────────────────

PROBE_ARGS = ("-XshowSettings:properties", "-version")
PROBE_TIMEOUT = 4.0

# Tried in order; first match wins.
#   java version "1.8.0_311"  /  openjdk version "17.0.2" 2022-01-18
_QUOTED_VERSION_RE = re.compile(
    r'(?:version\s+)?"(?P<v>[0-9]+(?:\.[0-9_]+)*)[^"\s]*"', re.IGNORECASE,
)
#   openjdk 17.0.2 2022-01-18
_OPENJDK_VERSION_RE = re.compile(r"openjdk\s+(?P<v>[0-9]+(?:\.[0-9]+)*)", re.IGNORECASE)
#   bare 17.0.2
_BARE_VERSION_RE = re.compile(r"(?P<major>[0-9]{2})\.[0-9]+\.[0-9]+")

_VENDOR_KEYWORDS: Tuple[Tuple[Vendor, Tuple[str, ...]], ...] = (
    (Vendor.AZUL,      ("azul", "zulu")),
    (Vendor.ADOPTIUM,  ("temurin", "adoptium", "adoptopenjdk")),
    (Vendor.MICROSOFT, ("microsoft",)),
    (Vendor.ORACLE,    ("oracle",)),
    (Vendor.CORRETTO,  ("corretto",)),
    (Vendor.BELLSOFT,  ("bellsoft", "liberica")),
    (Vendor.AMAZON,    ("amazon",)),
)

_32BIT_PATH_MARKERS = ("program files (x86)", "\\x86\\", "i386", "wow6432")


# ──────────────────────────────────────────────
#  Parsing
# ──────────────────────────────────────────────

def _int_prefix(token: str) -> int:
    digits = re.match(r"[0-9]+", token)
    return int(digits.group(0)) if digits else 0


def parse_major_version(text: str) -> int:
    """
    Extract the Java major version from probe output.

    ``"17.0.2"`` → 17, ``"1.8.0_311"`` → 8, ``openjdk 21.0.1`` → 21.

    Returns:
        The major version, or 0 when nothing recognisable is present.
    """
    if not text:
        return 0

    match = _QUOTED_VERSION_RE.search(text)
    if match:
        parts = match.group("v").split(".")
        if parts[0] == "1" and len(parts) >= 2:
            return _int_prefix(parts[1])
        return _int_prefix(parts[0])

    match = _OPENJDK_VERSION_RE.search(text)
    if match:
        return _int_prefix(match.group("v").split(".")[0])

    match = _BARE_VERSION_RE.search(text)
    if match:
        return int(match.group("major"))

    return 0


def parse_vendor(text: str, path: str = "") -> Vendor:
    """Guess the vendor from probe output and the launcher path."""
    haystack = f"{text} {path}".lower()
    for vendor, keywords in _VENDOR_KEYWORDS:
        if any(k in haystack for k in keywords):
            return vendor
    return Vendor.UNKNOWN


def is_64bit_path(path: str) -> bool:
    """
    Heuristic bitness from the install path.

    Any of ``Program Files (x86)``, ``\\x86\\``, ``i386`` or ``WOW6432``
    means 32-bit; everything else is assumed to be 64-bit.
    """
    lower = path.lower()
    return not any(marker in lower for marker in _32BIT_PATH_MARKERS)


def build_runtime(executable_path: str, probe_text: str) -> Optional[JavaRuntime]:
    """Turn probe output into a JavaRuntime, or None if no version was found."""
    major = parse_major_version(probe_text)
    if major < 1:
        return None
    return JavaRuntime(
        executable_path=executable_path,
        vendor=parse_vendor(probe_text, executable_path),
        major_version=major,
        is_64bit=is_64bit_path(executable_path),
        install_root=os.path.dirname(os.path.dirname(executable_path)),
    )


# ──────────────────────────────────────────────
#  Process handling
# ──────────────────────────────────────────────

def kill_process_tree(pid: int) -> None:
    """Kill *pid* and every descendant; already-exited processes are ignored."""
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
        for child in children:
            child.kill()
        parent.kill()
        psutil.wait_procs([parent] + children, timeout=2)
    except (psutil.NoSuchProcess, psutil.AccessDenied, ProcessLookupError):
        pass


# ──────────────────────────────────────────────
#  JavaProber
# ──────────────────────────────────────────────

class JavaProber:
    """
    Runs candidate launchers and turns their output into ``JavaRuntime``.

    Args:
        timeout: Wall-clock budget per probe in seconds
    """

    def __init__(self, timeout: float = PROBE_TIMEOUT) -> None:
        self.timeout = timeout

    def __call__(self, path: str) -> Optional[JavaRuntime]:
        return self.probe(path)

    def probe(self, path: str) -> Optional[JavaRuntime]:
        """
        Probe one candidate.

        Returns:
            JavaRuntime on success; None on timeout, unparseable output,
            missing file or any launch error.
        """
        if not path or not path.strip():
            return None
        try:
            exe = canonical_path(path)
            if not os.path.isfile(exe):
                return None

            text = self.run_probe(exe)
            if text is None:
                return None
            logger.debug("Probe output for %s:\n%s", exe, text.strip())

            runtime = build_runtime(exe, text)
            if runtime is None:
                logger.debug("No Java version in probe output of %s", exe)
            return runtime
        except Exception as exc:
            logger.debug("Probe failed for %s: %s", path, exc)
            return None

    def run_probe(self, exe: str) -> Optional[str]:
        """
        Launch *exe* and return combined stdout + stderr.

        Returns None when the process outlives the timeout.
        """
        kwargs = {}
        if os.name == "nt":
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW

        proc = subprocess.Popen(
            [exe, *PROBE_ARGS],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            **kwargs,
        )
        try:
            stdout, stderr = proc.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Probe timed out after %.1fs, killing: %s", self.timeout, exe)
            kill_process_tree(proc.pid)
            try:
                proc.communicate(timeout=2)
            except subprocess.TimeoutExpired:
                proc.kill()
            return None

        return f"{stdout or ''}\n{stderr or ''}"


def probe_java(path: str, timeout: float = PROBE_TIMEOUT) -> Optional[JavaRuntime]:
    """Convenience wrapper: probe a single launcher with a fresh prober."""
    return JavaProber(timeout).probe(path)
