"""OCI CLI config file reader.

The file is a flat, section-delimited ``key=value`` format::

    [DEFAULT]
    user=ocid1.user.oc1..aaaa
    tenancy=ocid1.tenancy.oc1..bbbb

It is parsed fresh on every call; nothing is cached or written back.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_SECTION_RE = re.compile(r"^\[([^\]]+)\]")
_COMMENT_PREFIXES = ("#", ";")


def default_oci_config_path() -> Path:
    """Default OCI CLI config path."""
    return Path.home() / ".oci" / "config"


def parse_profiles(text: str) -> dict[str, dict[str, str]]:
    """Parse config text into ``{profile_name: {key: value}}`` in file order.

    Headers count only at column 0; an indented bracket line is ignored.
    Lines before the first section header are ignored. A repeated header
    merges into the existing section; a repeated key keeps the last value.
    """
    profiles: dict[str, dict[str, str]] = {}
    current: dict[str, str] | None = None
    for raw_line in text.splitlines():
        line = raw_line.strip()
        header = _SECTION_RE.match(raw_line)
        if header:
            current = profiles.setdefault(header.group(1), {})
            continue
        if current is None or not line or line.startswith(_COMMENT_PREFIXES):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key:
            current[key] = value.strip()
    return profiles


class ConfigStore:
    """Read-only access to the profiles of one OCI config file."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path).expanduser() if path else default_oci_config_path()

    def _read(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read OCI config %s: %s", self.path, e)
            return None

    def list_profiles(self) -> list[str]:
        """Profile names in file order; empty when the file is unreadable."""
        text = self._read()
        if text is None:
            return []
        return list(parse_profiles(text))

    def load_profile(self, name: str) -> dict[str, str] | None:
        """Field map for ``name``, or None when absent or empty."""
        text = self._read()
        if text is None:
            return None
        fields = parse_profiles(text).get(name)
        if not fields:
            return None
        return dict(fields)
