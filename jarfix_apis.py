"""
jarfix_apis.py
==============
HTTP and installer helpers around the detection core.

  - **GitHub**   – latest release tag, for the update notice
  - **mclo.gs**  – paste-style upload of the run log
  - **Microsoft Build of OpenJDK** – JDK 21 MSI download + elevated install

All network calls use a caller-supplied ``aiohttp.ClientSession``.  Failures
are logged and reported through return values; only cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
#  Constants
# ──────────────────────────────────────────────

GITHUB_RELEASES_API = "https://api.github.com/repos/qMaxXen/Jarfix/releases/latest"
GITHUB_RELEASES_PAGE = "https://github.com/qMaxXen/Jarfix/releases/latest"
MCLOGS_UPLOAD_URL = "https://api.mclo.gs/1/log"
MICROSOFT_JDK21_MSI = "https://aka.ms/download-jdk/microsoft-jdk-21-windows-x64.msi"

HEADERS = {"User-Agent": "Jarfix"}

ProgressCallback = Callable[[int, int], Awaitable[None]]


# ──────────────────────────────────────────────
#  Result Objects
# ──────────────────────────────────────────────

@dataclass
class UpdateInfo:
    """Outcome of a release check.  ``latest`` is empty when unknown."""

    current: str
    latest: str = ""

    @property
    def checked(self) -> bool:
        return bool(self.latest)

    @property
    def is_outdated(self) -> bool:
        return self.checked and compare_versions(self.current, self.latest) < 0


@dataclass
class UploadResult:
    """Outcome of a log upload."""

    success: bool
    url: str = ""
    error: Optional[str] = None


# ──────────────────────────────────────────────
#  Update check
# ──────────────────────────────────────────────

def compare_versions(current: str, latest: str) -> int:
    """
    Compare dotted version tags numerically.

    ``v1.0.4`` vs ``v1.0.10`` → -1.  Non-numeric parts count as 0.
    """
    def _parts(tag: str):
        out = []
        for piece in tag.strip().lstrip("vV").split("."):
            try:
                out.append(int(piece))
            except ValueError:
                out.append(0)
        return out

    a, b = _parts(current), _parts(latest)
    length = max(len(a), len(b))
    a += [0] * (length - len(a))
    b += [0] * (length - len(b))
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


async def check_for_updates(
    session: aiohttp.ClientSession,
    current_version: str,
    api_url: str = GITHUB_RELEASES_API,
) -> UpdateInfo:
    """Ask GitHub for the latest release tag."""
    info = UpdateInfo(current=current_version)
    try:
        async with session.get(
            api_url, headers=HEADERS, timeout=aiohttp.ClientTimeout(total=5),
        ) as resp:
            if resp.status != 200:
                logger.warning("Release check returned %d", resp.status)
                return info
            data: Dict[str, Any] = await resp.json()
        info.latest = str(data.get("tag_name") or "")
    except Exception as exc:
        logger.warning("Could not check for updates: %s", exc)
    return info


# ──────────────────────────────────────────────
#  Log upload
# ──────────────────────────────────────────────

async def upload_log(
    session: aiohttp.ClientSession,
    content: str,
    url: str = MCLOGS_UPLOAD_URL,
) -> UploadResult:
    """Upload *content* to mclo.gs and return the share URL."""
    if not content.strip():
        return UploadResult(False, error="No log content to upload")
    try:
        async with session.post(
            url, data={"content": content}, headers=HEADERS,
            timeout=aiohttp.ClientTimeout(total=300),
        ) as resp:
            if resp.status != 200:
                return UploadResult(False, error=f"HTTP {resp.status}")
            data: Dict[str, Any] = await resp.json(content_type=None)
    except Exception as exc:
        logger.error("Log upload failed: %s", exc)
        return UploadResult(False, error=str(exc))

    if data.get("success") is True:
        share_url = str(data.get("url") or "")
        if not share_url:
            return UploadResult(False, error="Upload returned success but no URL")
        return UploadResult(True, url=share_url)
    return UploadResult(False, error=str(data.get("error") or "Unknown error"))


# ──────────────────────────────────────────────
#  Installer download / launch
# ──────────────────────────────────────────────

async def download_installer(
    session: aiohttp.ClientSession,
    url: str,
    dest: str | Path,
    progress_callback: Optional[ProgressCallback] = None,
) -> Optional[Path]:
    """
    Stream the installer to *dest*.

    Args:
        session:           aiohttp session for HTTP requests
        url:               Installer URL (redirects are followed)
        dest:              Target file path
        progress_callback: Optional async callable(downloaded, total); total is 0 if unknown

    Returns:
        Path on success, None on failure.  Cancellation removes the partial
        file and re-raises.
    """
    dest = Path(dest)
    downloaded = 0
    start_time = time.time()
    try:
        async with session.get(
            url, headers=HEADERS, timeout=aiohttp.ClientTimeout(total=1800),
        ) as resp:
            if resp.status != 200:
                logger.error("Installer download failed: HTTP %d", resp.status)
                return None
            total = resp.content_length or 0
            with open(dest, "wb") as fh:
                async for chunk in resp.content.iter_chunked(81920):
                    fh.write(chunk)
                    downloaded += len(chunk)
                    if progress_callback:
                        await progress_callback(downloaded, total)
    except asyncio.CancelledError:
        dest.unlink(missing_ok=True)
        logger.warning("Installer download cancelled")
        raise
    except Exception as exc:
        dest.unlink(missing_ok=True)
        logger.error("Installer download failed: %s", exc)
        return None

    elapsed = time.time() - start_time
    logger.info(
        "Download complete: %s (%.1f MB, %.2f MB/s)",
        dest.name, downloaded / (1024 * 1024),
        (downloaded / (1024 * 1024)) / max(elapsed, 0.001),
    )
    return dest


def installer_command(msi_path: str | Path) -> list:
    """PowerShell command that runs msiexec elevated and waits for it."""
    quoted = str(msi_path).replace("'", "''")
    script = (
        f"$p = Start-Process -FilePath 'msiexec.exe' "
        f"-ArgumentList '/i \"{quoted}\" /passive' -Verb RunAs -Wait -PassThru; "
        f"exit $p.ExitCode"
    )
    return ["powershell.exe", "-NoProfile", "-NonInteractive", "-Command", script]


async def run_installer(msi_path: str | Path) -> Optional[int]:
    """
    Launch the MSI with elevation and wait for it to finish.

    Returns:
        The installer exit code, or None when it could not be started.
    """
    if os.name != "nt":
        logger.error("MSI installation is only supported on Windows")
        return None
    try:
        proc = await asyncio.create_subprocess_exec(*installer_command(msi_path))
    except OSError as exc:
        logger.error("Failed to start installer: %s", exc)
        return None
    code = await proc.wait()
    logger.info("Installer finished with exit code %d", code)
    return code
