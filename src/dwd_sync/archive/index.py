"""
Remote last-modified lookup.

The archive has no batched stat, so every file is asked for with one MDTM
command, sequentially, over a single connection. For the observation feeds
with several hundred stations this is the slowest part of a cycle.
"""

import ftplib
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from dwd_sync.archive.client import ArchiveClient
from dwd_sync.exceptions import TimeFormatError, TransportError
from dwd_sync.utils.time_codec import TimeFormat, format_instant, parse_instant

logger = logging.getLogger(__name__)

# 213 20210109033512 or 213 20210109033512.123
_MDTM_RE = re.compile(r"^213\s+(\d{14})(?:\.(\d{1,6}))?\s*$")

# -rw-r--r--   1 ftp  ftp  7434 Jan 09 23:10 10minutenwerte_wind_01048_now.zip
_LIST_RE = re.compile(r"^\S+\s+\d+\s+\S+\s+\S+\s+\d+\s+([A-Z][a-z]{2}\s+\d{1,2}\s+\d{1,2}:\d{2})\s+(.+)$")

# Per-file replies that mean "cannot stat this one", not "connection is gone"
FILE_ERRORS = (ftplib.error_perm, ftplib.error_temp, ftplib.error_reply)


def parse_mdtm(response: str) -> int:
    """
    Convert an MDTM reply to epoch milliseconds.

    >>> parse_mdtm("213 20210109033000")
    1610163000000
    """
    match = _MDTM_RE.match(response.strip())
    if not match:
        raise TimeFormatError(f"Unexpected MDTM reply: {response!r}")
    stamp, fraction = match.groups()
    try:
        instant = datetime.strptime(stamp, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise TimeFormatError(f"Invalid MDTM timestamp: {stamp!r}") from e
    millis = int((fraction or "0").ljust(3, "0")[:3])
    return format_instant(instant, TimeFormat.EPOCH) + millis


class RemoteFileIndex:
    """Queries last-modified times of named files on the archive."""

    def __init__(self, client: Optional[ArchiveClient] = None):
        self.client = client or ArchiveClient()

    def last_modified(self, base_path: str, filenames: Sequence[str]) -> Dict[str, int]:
        """
        Get last-modified times for a list of files.

        Args:
            base_path: Remote directory the names are relative to
            filenames: Remote file names, queried in order

        Returns:
            Mapping filename -> epoch ms. Files that could not be stated are
            absent.

        Raises:
            TransportError: If the connection cannot be opened or drops
        """
        result: Dict[str, int] = {}
        failed: List[str] = []

        with self.client.session() as ftp:
            for filename in filenames:
                try:
                    response = ftp.sendcmd(f"MDTM {base_path}{filename}")
                    result[filename] = parse_mdtm(response)
                except FILE_ERRORS + (TimeFormatError,) as e:
                    failed.append(filename)
                    logger.warning(f"Cannot stat {base_path}{filename}: {e}")
                except (OSError, EOFError) as e:
                    raise TransportError(
                        f"Connection lost after {len(result)} of {len(filenames)} files: {e}"
                    ) from e

        logger.info(
            f"Stated {len(result)}/{len(filenames)} files in {base_path}"
            + (f" ({len(failed)} failed)" if failed else "")
        )
        return result

    def listing(self, base_path: str, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Get last-modified times of every file in a directory from one LIST.

        LIST dates carry no year; the current UTC year is assumed, so entries
        from last December read as the future in January. Lines that are not
        plain ``Mon DD hh:mm`` entries (older files list a year instead of a
        time) are skipped.

        Raises:
            TransportError: If the connection cannot be opened or drops
        """
        lines: List[str] = []
        with self.client.session() as ftp:
            try:
                ftp.retrlines(f"LIST {base_path}", lines.append)
            except (OSError, EOFError) as e:
                raise TransportError(f"LIST {base_path} failed: {e}") from e

        result: Dict[str, int] = {}
        for line in lines:
            match = _LIST_RE.match(line)
            if not match:
                continue
            stamp, name = match.groups()
            try:
                instant = parse_instant(stamp, TimeFormat.LISTING, now=now)
            except TimeFormatError as e:
                logger.debug(f"Skipping listing line {line!r}: {e}")
                continue
            result[name] = format_instant(instant, TimeFormat.EPOCH)

        logger.info(f"Listed {len(result)} files in {base_path}")
        return result
