"""Screen resolution providers.

The position summary of a node needs the device resolution.  On a real
device it comes from ``adb shell dumpsys display``; tests and offline
dumps use a fixed value instead.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess

from uidump._base import ResolutionProvider
from uidump.errors import ResolutionUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_ADB_TIMEOUT = 10.0

_MARKER = "PhysicalDisplayInfo"
_STATIC_RE = re.compile(r"\s*(\d+)\s*x\s*(\d+)\s*")


def parse_physical_display_info(output: str) -> str:
    """Extract ``"<width> x <height>"`` from ``dumpsys display`` output.

    Expects text like ``PhysicalDisplayInfo{1080 x 1920, 60.0 fps, ...}``.
    The first comma-separated field after the marker is taken and its
    leading character (the opening brace) dropped.

    Raises:
        ResolutionUnavailableError: If the marker is absent.
    """
    parts = output.split(_MARKER)
    if len(parts) < 2:
        raise ResolutionUnavailableError(f"No {_MARKER} in display dump")
    field = parts[1].split(",")[0]
    return field[1:].strip()


class StaticResolutionProvider(ResolutionProvider):
    """Returns a fixed resolution."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    @classmethod
    def from_string(cls, value: str) -> StaticResolutionProvider:
        """Build from ``"1080x1920"`` (spaces around the ``x`` allowed)."""
        m = _STATIC_RE.fullmatch(value)
        if m is None:
            raise ValueError(f"Expected WIDTHxHEIGHT, got {value!r}")
        return cls(int(m.group(1)), int(m.group(2)))

    def get_resolution(self) -> str:
        return f"{self.width} x {self.height}"


class AdbResolutionProvider(ResolutionProvider):
    """Reads the resolution of a connected device through ``adb``.

    Configuration falls back to environment variables:

    - ``UIDUMP_ADB``: adb executable (default ``adb``)
    - ``ANDROID_SERIAL``: device serial
    - ``UIDUMP_ADB_TIMEOUT``: timeout in seconds (default 10)

    The first successful answer is cached for the lifetime of the provider.
    """

    def __init__(
        self,
        *,
        adb: str | None = None,
        serial: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.adb = adb or os.environ.get("UIDUMP_ADB", "adb")
        self.serial = serial or os.environ.get("ANDROID_SERIAL") or None
        if timeout is None:
            env_timeout = os.environ.get("UIDUMP_ADB_TIMEOUT")
            try:
                timeout = float(env_timeout) if env_timeout else DEFAULT_ADB_TIMEOUT
            except ValueError:
                logger.warning("Ignoring invalid UIDUMP_ADB_TIMEOUT=%r", env_timeout)
                timeout = DEFAULT_ADB_TIMEOUT
        self.timeout = timeout
        self._cached: str | None = None

    def _command(self) -> list[str]:
        cmd = [self.adb]
        if self.serial:
            cmd += ["-s", self.serial]
        return cmd + ["shell", "dumpsys", "display"]

    def get_resolution(self) -> str:
        if self._cached is not None:
            return self._cached

        cmd = self._command()
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except OSError as e:
            raise ResolutionUnavailableError(f"Cannot run {self.adb}: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise ResolutionUnavailableError(
                f"{self.adb} did not answer within {self.timeout:g}s"
            ) from e

        if result.returncode != 0:
            raise ResolutionUnavailableError(
                f"{' '.join(cmd)} exited with {result.returncode}: {result.stderr.strip()}"
            )

        # dumpsys output spans several lines; join them the way `grep | read` would.
        output = " ".join(line for line in result.stdout.splitlines() if _MARKER in line)
        self._cached = parse_physical_display_info(output)
        logger.debug("Device resolution: %s", self._cached)
        return self._cached


def get_provider(value: str | None = None) -> ResolutionProvider:
    """Return a resolution provider for a CLI/config value.

    Args:
        value: ``None`` or ``"adb"`` for the device, ``"WIDTHxHEIGHT"`` for
              a fixed value.

    Raises:
        ValueError: If ``value`` is neither.
    """
    if value is None or value == "adb":
        return AdbResolutionProvider()
    return StaticResolutionProvider.from_string(value)
