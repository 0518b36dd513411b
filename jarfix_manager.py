"""
jarfix_manager.py
=================
The Jarfix workflow on top of the detection core.

Responsibilities:
  - Configuration management (config.json, merged over defaults)
  - Detect → assess → select → repair the .jar association
  - Offer / run the Java 21 installer when nothing qualifies, then re-detect
  - Update check and run-log upload
  - Keep the upload-ready run log for the current session
"""

from __future__ import annotations

import copy
import json
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

import jarfix_apis
from jar_association import JarAssociationFixer
from java_detector import JavaDetector, select_preferred_runtime
from java_runtime import JavaRuntime
from registry import WindowsRegistry
from run_log import RunLogHandler

logger = logging.getLogger(__name__)

JARFIX_VERSION = "1.0.4"

DEFAULT_CONFIG: Dict[str, Any] = {
    "detection": {
        "probe_timeout": 4.0,
        "max_workers": 8,
    },
    "policy": {
        "min_version": 17,
        "require_64bit": True,
    },
    "association": {
        "extension": ".jar",
        "prog_id": "jarfile",
    },
    "installer": {
        "url": jarfix_apis.MICROSOFT_JDK21_MSI,
        "filename": "jarfix-jdk21.msi",
    },
    "updates": {
        "check": True,
        "api_url": jarfix_apis.GITHUB_RELEASES_API,
        "release_url": jarfix_apis.GITHUB_RELEASES_PAGE,
    },
    "logs": {
        "dir": "logs",
        "upload_url": jarfix_apis.MCLOGS_UPLOAD_URL,
    },
}

# Flow outcomes carried in Result.details["status"]
STATUS_FIXED = "fixed"
STATUS_REPAIR_FAILED = "repair_failed"
STATUS_NEEDS_INSTALL = "needs_install"
STATUS_INSTALL_FAILED = "install_failed"


def merge_config(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay *overrides* on a copy of *defaults*."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str | Path) -> Dict[str, Any]:
    """Load config.json and merge it over DEFAULT_CONFIG."""
    config_path = Path(config_path)
    user: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                user = json.load(fh)
            if not isinstance(user, dict):
                raise ValueError("top-level JSON value must be an object")
            logger.debug("Config loaded from %s", config_path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to load config, using defaults: %s", exc)
            user = {}
    else:
        logger.debug("Config file not found, using defaults")
    return merge_config(DEFAULT_CONFIG, user)


# ──────────────────────────────────────────────
#  Result Object
# ──────────────────────────────────────────────

@dataclass
class Result:
    """Unified result object for all JarfixManager operations."""

    success: bool
    message: str
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **details: Any) -> "Result":
        """Create a successful result."""
        return cls(success=True, message=message, details=details)

    @classmethod
    def fail(cls, message: str, error: Optional[str] = None, **details: Any) -> "Result":
        """Create a failed result."""
        return cls(success=False, message=message, error=error, details=details)


# ──────────────────────────────────────────────
#  Runtime Assessment
# ──────────────────────────────────────────────

@dataclass
class RuntimeAssessment:
    """Problems worth telling the user about, derived from a ranked list."""

    no_runtime: bool = False
    only_legacy: bool = False          # nothing newer than Java 8
    modern_only_32bit: bool = False    # Java 17+ exists, but only as 32-bit
    only_32bit: bool = False           # no 64-bit runtime at all

    def warnings(self) -> List[str]:
        out: List[str] = []
        if self.no_runtime:
            out.append("No Java runtime found.")
        if self.only_legacy:
            out.append("You're using Java 8 or older, which may cause problems. "
                       "You should use Java 17 or higher.")
        if self.modern_only_32bit:
            out.append("You have Java 17+ installed, but it's 32-bit. "
                       "32-bit Java is not recommended. You should use 64-bit Java 17 or higher.")
        if self.only_32bit and not self.modern_only_32bit:
            out.append("You're using 32-bit Java on a 64-bit system. "
                       "32-bit Java is not recommended. You should use 64-bit Java 17 or higher.")
        return out


def assess_runtimes(runtimes: List[JavaRuntime], min_version: int = 17) -> RuntimeAssessment:
    if not runtimes:
        return RuntimeAssessment(no_runtime=True)
    has_modern_32 = any(r.major_version >= min_version and not r.is_64bit for r in runtimes)
    has_modern_64 = any(r.major_version >= min_version and r.is_64bit for r in runtimes)
    return RuntimeAssessment(
        only_legacy=max(r.major_version for r in runtimes) <= 8,
        modern_only_32bit=has_modern_32 and not has_modern_64,
        only_32bit=not any(r.is_64bit for r in runtimes),
    )


# ──────────────────────────────────────────────
#  Jarfix Manager
# ──────────────────────────────────────────────

class JarfixManager:
    """
    Drives detection and association repair.

    Args:
        config_path: Path to config.json
        registry:    Registry wrapper shared by detector and fixer
        detector:    Override the JavaDetector (tests)
        fixer:       Override the JarAssociationFixer (tests)
    """

    def __init__(
        self,
        config_path: str | Path = "config.json",
        registry=None,
        detector: Optional[JavaDetector] = None,
        fixer: Optional[JarAssociationFixer] = None,
    ) -> None:
        self.config_path = Path(config_path)
        self.config: Dict[str, Any] = {}
        self._load_config()

        registry = registry if registry is not None else WindowsRegistry()
        det_cfg = self.config["detection"]
        assoc_cfg = self.config["association"]

        self.detector = detector or JavaDetector(
            registry=registry,
            max_workers=int(det_cfg.get("max_workers", 8)),
            probe_timeout=float(det_cfg.get("probe_timeout", 4.0)),
        )
        self.fixer = fixer or JarAssociationFixer(
            registry=registry,
            extension=assoc_cfg.get("extension", ".jar"),
            prog_id=assoc_cfg.get("prog_id", "jarfile"),
        )

        self.runtimes: List[JavaRuntime] = []

        self.run_log = RunLogHandler()
        logging.getLogger().addHandler(self.run_log)

        logger.info("Jarfix version: %s", JARFIX_VERSION)

    def close(self) -> None:
        """Detach the run-log handler from the root logger."""
        logging.getLogger().removeHandler(self.run_log)

    # ================================================================
    #  CONFIGURATION
    # ================================================================

    def _load_config(self) -> None:
        self.config = load_config(self.config_path)

    def save_config(self) -> None:
        """Persist self.config back to config.json."""
        try:
            with open(self.config_path, "w", encoding="utf-8") as fh:
                json.dump(self.config, fh, indent=2)
            logger.debug("Config saved to %s", self.config_path)
        except OSError as exc:
            logger.error("Failed to save config: %s", exc)

    def get_config(self) -> Dict[str, Any]:
        return copy.deepcopy(self.config)

    @property
    def min_version(self) -> int:
        return int(self.config["policy"].get("min_version", 17))

    @property
    def require_64bit(self) -> bool:
        return bool(self.config["policy"].get("require_64bit", True))

    # ================================================================
    #  DETECTION
    # ================================================================

    def detect(self) -> List[JavaRuntime]:
        """Run a fresh discovery pass and remember the result."""
        logger.info("Starting detection of installed Java runtimes...")
        self.runtimes = self.detector.detect()
        logger.info("Found %d runtime(s).", len(self.runtimes))
        for rt in self.runtimes:
            logger.info("Detected: %s", rt.executable_path)
        return list(self.runtimes)

    def select(self, runtimes: Optional[List[JavaRuntime]] = None) -> Optional[JavaRuntime]:
        pool = self.runtimes if runtimes is None else runtimes
        return select_preferred_runtime(pool, self.min_version, self.require_64bit)

    def assess(self, runtimes: Optional[List[JavaRuntime]] = None) -> RuntimeAssessment:
        pool = self.runtimes if runtimes is None else runtimes
        return assess_runtimes(pool, self.min_version)

    # ================================================================
    #  ASSOCIATION
    # ================================================================

    def apply_association(self, runtime: JavaRuntime) -> Result:
        """Point .jar at *runtime* and phrase the outcome for the user."""
        logger.info("Auto-applying association to runtime: %s", runtime.executable_path)
        if self.fixer.apply(runtime):
            logger.info("Association updated (user-scope).")
            return Result.ok(
                f"Successfully updated the {self.fixer.extension} suffix. Your "
                f"{self.fixer.extension} files should now open with Java {runtime.major_version}.",
                status=STATUS_FIXED,
                runtime=runtime,
            )
        logger.error("Failed to update association (user-scope).")
        return Result.fail(
            "Failed to update the file association. Try running Jarfix as administrator.",
            error="registry write failed",
            status=STATUS_REPAIR_FAILED,
            runtime=runtime,
        )

    # ================================================================
    #  MAIN FLOW
    # ================================================================

    def run_fix_flow(self) -> Result:
        """
        Detect runtimes and repair the association if one qualifies.

        Returns:
            Result whose ``details`` carry ``status``, ``runtime``,
            ``runtimes`` and ``warnings``.  ``needs_install`` is a normal,
            unsuccessful outcome the caller should act on.
        """
        runtimes = self.detect()
        warnings = self.assess(runtimes).warnings()
        for w in warnings:
            logger.warning(w)

        chosen = self.select(runtimes)
        if chosen is None:
            logger.info("No suitable Java runtime (%d or higher) found.", self.min_version)
            return Result.fail(
                f"No suitable Java runtime ({self.min_version} or higher) was found. "
                f"Install Java 21 to fix .jar files.",
                status=STATUS_NEEDS_INSTALL,
                runtime=None,
                runtimes=runtimes,
                warnings=warnings,
            )

        result = self.apply_association(chosen)
        result.details.update(runtimes=runtimes, warnings=warnings)
        return result

    # ================================================================
    #  INSTALLER
    # ================================================================

    async def install_runtime(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        progress_callback: Optional[jarfix_apis.ProgressCallback] = None,
    ) -> Result:
        """
        Download and run the Java 21 installer, then re-detect and repair.

        Cancellation (e.g. the user pressing Cancel) propagates.
        """
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                return await self.install_runtime(own_session, progress_callback)

        inst_cfg = self.config["installer"]
        dest = Path(tempfile.gettempdir()) / inst_cfg.get("filename", "jarfix-jdk21.msi")

        logger.info("Beginning download of Java 21 installer...")
        path = await jarfix_apis.download_installer(
            session, inst_cfg["url"], dest, progress_callback,
        )
        if path is None:
            return Result.fail(
                "Download failed. Check your internet connection and try again.",
                error="download failed",
                status=STATUS_INSTALL_FAILED,
            )

        logger.info("Download complete; launching MSI installer (elevated).")
        code = await jarfix_apis.run_installer(path)
        if code is None:
            return Result.fail(
                "Failed to start the installer. Try running it manually from "
                f"{path}.",
                error="installer not started",
                status=STATUS_INSTALL_FAILED,
            )

        logger.info("Re-detecting runtimes after install attempt.")
        runtimes = self.detect()
        chosen = self.select(runtimes)
        if chosen is None:
            return Result.fail(
                "Installation may not have completed successfully. "
                "Please check the Log tab for details.",
                error=f"installer exit code {code}",
                status=STATUS_INSTALL_FAILED,
                runtimes=runtimes,
            )

        logger.info("Java %d has been installed successfully.", chosen.major_version)
        result = self.apply_association(chosen)
        if not result.success:
            result.message = (
                "Installation succeeded, but failed to set file association. "
                "Try running Jarfix as administrator."
            )
        result.details.update(runtimes=runtimes)
        return result

    # ================================================================
    #  UPDATES & LOG UPLOAD
    # ================================================================

    async def check_for_updates(
        self, session: Optional[aiohttp.ClientSession] = None,
    ) -> jarfix_apis.UpdateInfo:
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                return await self.check_for_updates(own_session)

        info = await jarfix_apis.check_for_updates(
            session, JARFIX_VERSION, self.config["updates"]["api_url"],
        )
        if not info.checked:
            logger.warning("Could not check for updates")
        elif info.is_outdated:
            logger.warning("Jarfix version: %s (Update available: %s)", JARFIX_VERSION, info.latest)
        else:
            logger.info("Jarfix version: %s (latest version)", JARFIX_VERSION)
        return info

    async def upload_run_log(self, session: Optional[aiohttp.ClientSession] = None) -> Result:
        if session is None:
            async with aiohttp.ClientSession() as own_session:
                return await self.upload_run_log(own_session)

        content = self.run_log.upload_text()
        if not content.strip():
            logger.warning("Upload aborted: no log content.")
            return Result.fail("No log to upload.", error="empty log")

        logger.info("Uploading log to mclo.gs...")
        uploaded = await jarfix_apis.upload_log(
            session, content, self.config["logs"]["upload_url"],
        )
        if uploaded.success:
            logger.info("Log uploaded: %s", uploaded.url)
            return Result.ok(f"Log uploaded: {uploaded.url}", url=uploaded.url)
        logger.error("Upload failed: %s", uploaded.error)
        return Result.fail(
            f"Upload failed: {uploaded.error}. Please try again.", error=uploaded.error,
        )
