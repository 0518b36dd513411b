"""
java_scanners.py
================
Candidate sources for Java launchers on Windows.

Four independent scanners, each returning an ordered, de-duplicated list of
paths to ``javaw.exe`` files that exist on disk.  Nothing here runs Java;
verification is the prober's job.

Sources:
  - JavaSoft registry trees     (installer-registered JREs / JDKs)
  - Uninstall registry entries  (filtered by vendor keyword)
  - Installation-root folders   (Program Files, Program Files (x86), LocalAppData\\Programs)
  - PATH search                 (directories on the executable search path)

A missing key, a locked directory or a malformed value only skips that one
entry; a scanner never raises for I/O problems.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Iterable, List, Mapping, Optional

from java_runtime import LAUNCHER_NAME, dedupe_paths
from registry import scope_views, view_name

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
#  Constants
# ──────────────────────────────────────────────

JAVASOFT_KEYS = (
    r"SOFTWARE\JavaSoft\Java Runtime Environment",
    r"SOFTWARE\JavaSoft\Java Development Kit",
)

UNINSTALL_KEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"

# Substrings that mark a product or folder as Java-related.  Deliberately
# broad: "java" and "jdk" also hit unrelated software, which the prober
# then filters out.
VENDOR_HINTS = (
    "azul", "zulu", "adoptium", "temurin", "microsoft", "oracle",
    "corretto", "bellsoft", "amazon", "jdk", "java",
)

_VERSION_DIR_PATTERNS = (
    re.compile(r"jdk-?\d+", re.IGNORECASE),
    re.compile(r"jre1?\.?\d+", re.IGNORECASE),
)

# DisplayIcon: optional quote, then everything up to a quote or ",<index>"
_DISPLAY_ICON_RE = re.compile(r'^("?)([^",]+)')
_QUOTED_EXE_RE = re.compile(r'"(?P<path>[^"]+\.exe)"', re.IGNORECASE)
_BARE_EXE_RE = re.compile(r"^(?P<path>[^ ]+\.exe)", re.IGNORECASE)


# ──────────────────────────────────────────────
#  Helpers
# ──────────────────────────────────────────────

def launcher_in(install_root: str) -> str:
    """``<install_root>/bin/javaw.exe``."""
    return os.path.join(install_root, "bin", LAUNCHER_NAME)


def _is_file(path: str) -> bool:
    try:
        return os.path.isfile(path)
    except (OSError, ValueError):
        return False


def _is_launcher(path: str) -> bool:
    return path.lower().endswith(LAUNCHER_NAME)


def has_vendor_hint(name: str) -> bool:
    lower = name.lower()
    return any(hint in lower for hint in VENDOR_HINTS)


def matches_version_dir(name: str) -> bool:
    return any(p.search(name) for p in _VERSION_DIR_PATTERNS)


def split_search_path(path_value: Optional[str] = None) -> List[str]:
    """Split a PATH-style string into non-empty directory entries."""
    if path_value is None:
        path_value = os.environ.get("PATH", "")
    parts = []
    for part in path_value.split(os.pathsep):
        part = part.strip().strip('"')
        if part:
            parts.append(part)
    return parts


def installation_roots(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Well-known top-level installation directories for this user.

    Returns:
        ``%ProgramFiles%``, ``%ProgramFiles(x86)%`` and
        ``%LOCALAPPDATA%\\Programs``, skipping unset variables.
    """
    env = os.environ if environ is None else environ
    roots: List[str] = []
    for var in ("ProgramFiles", "ProgramFiles(x86)"):
        value = env.get(var, "")
        if value:
            roots.append(value)
    local = env.get("LOCALAPPDATA", "")
    if local:
        roots.append(os.path.join(local, "Programs"))
    return dedupe_paths(roots)


def parse_display_icon(value: str) -> Optional[str]:
    """
    Pull the file path out of a DisplayIcon value.

    ``"C:\\jdk\\bin\\javaw.exe",0`` → ``C:\\jdk\\bin\\javaw.exe``
    """
    match = _DISPLAY_ICON_RE.match(value.strip())
    if not match:
        return None
    path = match.group(2).strip().strip('"')
    return path or None


def parse_uninstall_exe(value: str) -> Optional[str]:
    """Pull a quoted (or leading bare) ``.exe`` path out of an UninstallString."""
    match = _QUOTED_EXE_RE.search(value) or _BARE_EXE_RE.match(value.strip())
    return match.group("path") if match else None


# ================================================================
#  1. JAVASOFT REGISTRY
# ================================================================

def scan_javasoft_registry(registry) -> List[str]:
    """
    Read the JavaSoft JRE/JDK trees in every scope and view.

    For each tree: follow ``CurrentVersion`` to its ``JavaHome`` and also
    visit every version subkey directly, since side-by-side installs often
    leave ``CurrentVersion`` pointing elsewhere.
    """
    found: List[str] = []
    for hive, view in scope_views():
        for key_path in JAVASOFT_KEYS:
            found.extend(_scan_javasoft_key(registry, hive, view, key_path))
    return dedupe_paths(found)


def _read_java_home(registry, hive: str, view: int, key_path: str) -> Optional[str]:
    try:
        home = registry.read_string(hive, key_path, "JavaHome", view)
    except OSError as exc:
        logger.debug("Cannot read %s\\%s (%s): %s", hive, key_path, view_name(view), exc)
        return None
    if home and home.strip():
        return home.strip()
    return None


def _scan_javasoft_key(registry, hive: str, view: int, key_path: str) -> List[str]:
    results: List[str] = []

    def _add(home: Optional[str]) -> None:
        if home:
            candidate = launcher_in(home)
            if _is_file(candidate):
                results.append(candidate)

    try:
        current = registry.read_string(hive, key_path, "CurrentVersion", view)
    except OSError as exc:
        logger.debug("No %s\\%s (%s): %s", hive, key_path, view_name(view), exc)
        return results

    if current and current.strip():
        _add(_read_java_home(registry, hive, view, f"{key_path}\\{current.strip()}"))

    try:
        versions = registry.subkey_names(hive, key_path, view)
    except OSError as exc:
        logger.debug("Cannot enumerate %s\\%s: %s", hive, key_path, exc)
        return results

    for version in versions:
        _add(_read_java_home(registry, hive, view, f"{key_path}\\{version}"))

    return results


# ================================================================
#  2. UNINSTALL REGISTRY
# ================================================================

def scan_uninstall_registry(registry) -> List[str]:
    """
    Look through Add/Remove Programs entries whose DisplayName carries a
    vendor keyword, and derive launcher paths from InstallLocation,
    DisplayIcon and UninstallString (in that order).
    """
    found: List[str] = []
    for hive, view in scope_views():
        try:
            entries = registry.subkey_names(hive, UNINSTALL_KEY, view)
        except OSError as exc:
            logger.debug("No uninstall key in %s (%s): %s", hive, view_name(view), exc)
            continue
        for entry in entries:
            entry_path = f"{UNINSTALL_KEY}\\{entry}"
            try:
                found.extend(_candidates_from_uninstall_entry(registry, hive, view, entry_path))
            except (OSError, ValueError) as exc:
                logger.debug("Skipping uninstall entry %s: %s", entry, exc)
    return dedupe_paths(found)


def _candidates_from_uninstall_entry(registry, hive: str, view: int, entry_path: str) -> List[str]:
    display_name = registry.read_string(hive, entry_path, "DisplayName", view) or ""
    if not display_name.strip() or not has_vendor_hint(display_name):
        return []

    results: List[str] = []

    install_location = registry.read_string(hive, entry_path, "InstallLocation", view)
    if install_location and install_location.strip():
        candidate = launcher_in(install_location.strip().strip('"'))
        if _is_file(candidate):
            results.append(candidate)

    display_icon = registry.read_string(hive, entry_path, "DisplayIcon", view)
    if display_icon and display_icon.strip():
        icon_path = parse_display_icon(display_icon)
        if icon_path:
            if _is_launcher(icon_path) and _is_file(icon_path):
                results.append(icon_path)
            else:
                candidate = launcher_in(os.path.dirname(icon_path) or icon_path)
                if _is_file(candidate):
                    results.append(candidate)

    uninstall_string = registry.read_string(hive, entry_path, "UninstallString", view)
    if uninstall_string and uninstall_string.strip():
        exe = parse_uninstall_exe(uninstall_string)
        if exe and _is_launcher(exe) and _is_file(exe):
            results.append(exe)

    if results:
        logger.debug("Uninstall entry '%s' → %s", display_name, results)
    return results


# ================================================================
#  3. INSTALLATION ROOTS
# ================================================================

def _subdirectories(directory: str) -> List[str]:
    """Immediate subdirectories, sorted by name for stable output."""
    with os.scandir(directory) as it:
        dirs = [entry.path for entry in it if entry.is_dir()]
    return sorted(dirs, key=lambda p: os.path.basename(p).lower())


def scan_installation_roots(roots: Iterable[str]) -> List[str]:
    """
    Scan Program Files style directories.

    For each root:
      - vendor-named folders are searched one level deep and checked directly
      - folders named like ``jdk-17`` / ``jre1.8`` are checked directly
      - ``<root>\\Java`` is searched one level deep
    """
    found: List[str] = []
    for root in roots:
        if not root:
            continue
        try:
            if not os.path.isdir(root):
                continue
            children = _subdirectories(root)
        except OSError as exc:
            logger.debug("Cannot list %s: %s", root, exc)
            continue

        for child in children:
            name = os.path.basename(child)
            if has_vendor_hint(name):
                found.extend(_launchers_one_level_down(child))
                top = launcher_in(child)
                if _is_file(top):
                    found.append(top)
            if matches_version_dir(name):
                candidate = launcher_in(child)
                if _is_file(candidate):
                    found.append(candidate)

        java_dir = os.path.join(root, "Java")
        if os.path.isdir(java_dir):
            found.extend(_launchers_one_level_down(java_dir))

    return dedupe_paths(found)


def _launchers_one_level_down(directory: str) -> List[str]:
    results: List[str] = []
    try:
        subdirs = _subdirectories(directory)
    except OSError as exc:
        logger.debug("Cannot list %s: %s", directory, exc)
        return results
    for sub in subdirs:
        candidate = launcher_in(sub)
        if _is_file(candidate):
            results.append(candidate)
    return results


# ================================================================
#  4. SEARCH PATH
# ================================================================

def scan_search_path(path_value: Optional[str] = None) -> List[str]:
    """Check every PATH directory for ``javaw.exe``."""
    found: List[str] = []
    for directory in split_search_path(path_value):
        candidate = os.path.join(directory, LAUNCHER_NAME)
        if _is_file(candidate):
            found.append(candidate)
    return dedupe_paths(found)
