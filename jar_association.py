"""
jar_association.py
==================
Point the per-user ``.jar`` file association at a chosen Java runtime.

Everything is written below ``HKEY_CURRENT_USER`` so no elevation is
needed, and re-running with the same runtime yields the same registry
state.

Steps (only 2 and 3 decide the result):
  1. Remove Explorer overrides (UserChoice / OpenWithList / OpenWithProgids)
  2. ``Software\\Classes\\.jar``                      → ``jarfile``
  3. ``Software\\Classes\\jarfile\\shell\\open\\command`` → ``"<javaw>" -jar "%1" %*``
  4. ``Software\\Classes\\jarfile\\DefaultIcon``        → first icon source found
  5. Tell the shell that associations changed
"""

from __future__ import annotations

import ctypes
import logging
import os
from typing import Callable, List, Optional

from java_runtime import JavaRuntime
from registry import WindowsRegistry

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
#  Constants
# ──────────────────────────────────────────────

CLASSES_KEY = r"Software\Classes"
FILE_EXTS_KEY = r"Software\Microsoft\Windows\CurrentVersion\Explorer\FileExts"
OVERRIDE_SUBKEYS = ("UserChoice", "OpenWithList", "OpenWithProgids")

DEFAULT_EXTENSION = ".jar"
DEFAULT_PROG_ID = "jarfile"

SHCNE_ASSOCCHANGED = 0x08000000
SHCNF_IDLIST = 0x0000


def notify_association_changed() -> None:
    """Broadcast SHCNE_ASSOCCHANGED so Explorer picks up the new mapping."""
    if os.name != "nt":
        logger.debug("Shell notification skipped (not Windows)")
        return
    ctypes.windll.shell32.SHChangeNotify(SHCNE_ASSOCCHANGED, SHCNF_IDLIST, None, None)
    logger.debug("Shell notified of association change")


# ──────────────────────────────────────────────
#  JarAssociationFixer
# ──────────────────────────────────────────────

class JarAssociationFixer:
    """
    Rewrites the user-scope association for one file extension.

    Args:
        registry:     Registry writer (defaults to the live ``winreg`` wrapper)
        extension:    File extension including the dot
        prog_id:      Class identifier the extension is pointed at
        notify_shell: Callable run after a successful write
    """

    def __init__(
        self,
        registry=None,
        extension: str = DEFAULT_EXTENSION,
        prog_id: str = DEFAULT_PROG_ID,
        notify_shell: Optional[Callable[[], None]] = None,
    ) -> None:
        self.registry = registry if registry is not None else WindowsRegistry()
        self.extension = extension if extension.startswith(".") else f".{extension}"
        self.prog_id = prog_id
        self.notify_shell = notify_shell if notify_shell is not None else notify_association_changed

    # ── Key paths ──────────────────────────────

    @property
    def extension_key(self) -> str:
        return f"{CLASSES_KEY}\\{self.extension}"

    @property
    def command_key(self) -> str:
        return f"{CLASSES_KEY}\\{self.prog_id}\\shell\\open\\command"

    @property
    def icon_key(self) -> str:
        return f"{CLASSES_KEY}\\{self.prog_id}\\DefaultIcon"

    def override_keys(self) -> List[str]:
        return [f"{FILE_EXTS_KEY}\\{self.extension}\\{sub}" for sub in OVERRIDE_SUBKEYS]

    # ── Values ─────────────────────────────────

    @staticmethod
    def open_command(runtime: JavaRuntime) -> str:
        return f'"{runtime.executable_path}" -jar "%1" %*'

    @staticmethod
    def icon_candidates(runtime: JavaRuntime) -> List[str]:
        bin_dir = runtime.bin_dir
        return [
            os.path.join(bin_dir, "jar.ico"),
            os.path.join(os.path.dirname(bin_dir), "jar.ico"),
            runtime.executable_path,
        ]

    def icon_value(self, runtime: JavaRuntime) -> Optional[str]:
        """DefaultIcon value for the first icon source that exists."""
        for candidate in self.icon_candidates(runtime):
            if os.path.isfile(candidate):
                if candidate.lower().endswith(".exe"):
                    return f"{candidate},0"
                return candidate
        return None

    # ── Steps ──────────────────────────────────

    def clear_overrides(self) -> None:
        """Step 1: drop Explorer's per-user override keys (best-effort)."""
        for key in self.override_keys():
            try:
                self.registry.delete_tree(key)
                logger.info("Removed association override HKCU\\%s", key)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.debug("Could not remove HKCU\\%s: %s", key, exc)

    def set_icon(self, runtime: JavaRuntime) -> None:
        """Step 4: DefaultIcon (best-effort)."""
        try:
            value = self.icon_value(runtime)
            if value is None:
                logger.debug("No icon source found near %s", runtime.executable_path)
                return
            self.registry.set_string(self.icon_key, value)
        except Exception as exc:
            logger.debug("Could not set DefaultIcon: %s", exc)

    def apply(self, runtime: JavaRuntime) -> bool:
        """
        Point the extension at *runtime*.

        The runtime is not re-validated here; version and bitness policy
        belong to the caller.

        Returns:
            True when both association writes succeeded.
        """
        try:
            self.clear_overrides()
        except Exception as exc:
            logger.debug("Override cleanup failed: %s", exc)

        try:
            self.registry.set_string(self.extension_key, self.prog_id)
            self.registry.set_string(self.command_key, self.open_command(runtime))
        except Exception as exc:
            logger.error("Failed to write %s association: %s", self.extension, exc)
            return False

        self.set_icon(runtime)

        try:
            self.notify_shell()
        except Exception as exc:
            logger.debug("Shell notification failed: %s", exc)

        logger.info(
            "Associated %s with %s (%s)", self.extension, runtime.executable_path, self.prog_id,
        )
        return True


def set_jar_association_user_scope(runtime: JavaRuntime, registry=None) -> bool:
    """Apply the default ``.jar`` → ``jarfile`` association for *runtime*."""
    return JarAssociationFixer(registry=registry).apply(runtime)
