"""
registry.py
===========
Small wrapper around ``winreg`` used by the scanners and the association fixer.

Reads can target either registry view (64-bit / 32-bit) of either scope
(machine / user).  Writes only ever touch ``HKEY_CURRENT_USER``.

Every method raises ``OSError`` (usually ``FileNotFoundError`` or
``PermissionError``) when a key cannot be opened, exactly like ``winreg``
itself; callers decide whether that is fatal.  On hosts without ``winreg``
every key behaves as missing.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

try:
    import winreg
    HAS_WINREG = True
except ImportError:
    winreg = None  # type: ignore[assignment]
    HAS_WINREG = False

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
#  Constants
# ──────────────────────────────────────────────

HKLM = "HKEY_LOCAL_MACHINE"
HKCU = "HKEY_CURRENT_USER"

VIEW_64 = 64
VIEW_32 = 32

SCOPES: Tuple[str, ...] = (HKLM, HKCU)
VIEWS: Tuple[int, ...] = (VIEW_64, VIEW_32)


def scope_views() -> List[Tuple[str, int]]:
    """All four {machine, user} x {64-bit, 32-bit} combinations."""
    return [(hive, view) for hive in SCOPES for view in VIEWS]


def view_name(view: Optional[int]) -> str:
    return {VIEW_64: "64-bit", VIEW_32: "32-bit"}.get(view, "default")


# ──────────────────────────────────────────────
#  WindowsRegistry
# ──────────────────────────────────────────────

class WindowsRegistry:
    """Live registry access through ``winreg``."""

    def _require(self, hive: str, path: str) -> None:
        if not HAS_WINREG:
            raise FileNotFoundError(f"Registry not available on this platform: {hive}\\{path}")

    @staticmethod
    def _hive(hive: str):
        return getattr(winreg, hive)

    @staticmethod
    def _access(view: Optional[int], base: int) -> int:
        if view == VIEW_64:
            return base | winreg.KEY_WOW64_64KEY
        if view == VIEW_32:
            return base | winreg.KEY_WOW64_32KEY
        return base

    # ── Reads ──────────────────────────────────

    def read_string(
        self, hive: str, path: str, name: str = "", view: Optional[int] = None,
    ) -> Optional[str]:
        """
        Read a string value.

        Returns None when the value is absent or not a string type.
        Raises OSError when the key itself cannot be opened.
        """
        self._require(hive, path)
        access = self._access(view, winreg.KEY_READ)
        with winreg.OpenKey(self._hive(hive), path, 0, access) as key:
            try:
                value, kind = winreg.QueryValueEx(key, name)
            except FileNotFoundError:
                return None
        if kind == winreg.REG_EXPAND_SZ and isinstance(value, str):
            return winreg.ExpandEnvironmentStrings(value)
        if kind == winreg.REG_SZ and isinstance(value, str):
            return value
        return None

    def subkey_names(self, hive: str, path: str, view: Optional[int] = None) -> List[str]:
        """List the immediate subkeys of *path*."""
        self._require(hive, path)
        access = self._access(view, winreg.KEY_READ)
        names: List[str] = []
        with winreg.OpenKey(self._hive(hive), path, 0, access) as key:
            index = 0
            while True:
                try:
                    names.append(winreg.EnumKey(key, index))
                except OSError:
                    break
                index += 1
        return names

    # ── Writes (HKCU only) ─────────────────────

    def set_string(self, path: str, value: str, name: str = "") -> None:
        """Create *path* under HKCU if needed and write a REG_SZ value."""
        self._require(HKCU, path)
        with winreg.CreateKeyEx(winreg.HKEY_CURRENT_USER, path, 0, winreg.KEY_WRITE) as key:
            winreg.SetValueEx(key, name, 0, winreg.REG_SZ, value)
        logger.debug("Registry write: HKCU\\%s [%s] = %s", path, name or "(default)", value)

    def delete_tree(self, path: str) -> None:
        """Recursively delete HKCU\\*path*.  Raises FileNotFoundError if absent."""
        self._require(HKCU, path)
        for child in self.subkey_names(HKCU, path):
            self.delete_tree(f"{path}\\{child}")
        parent, _, leaf = path.rpartition("\\")
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, parent, 0, winreg.KEY_ALL_ACCESS) as key:
            winreg.DeleteKey(key, leaf)
        logger.debug("Registry delete: HKCU\\%s", path)
