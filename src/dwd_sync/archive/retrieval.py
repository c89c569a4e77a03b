"""
Download, decompress and purge of per-feed scratch directories.

Every feed owns one scratch directory. Within a cycle the directory goes
through download -> decompress -> (parse) -> purge; purge only runs after the
feed's upsert finished, so a failed cycle leaves its files for inspection
until the next successful one.
"""

import ftplib
import logging
import shutil
import zipfile
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from dwd_sync.archive.client import ArchiveClient
from dwd_sync.exceptions import TransportError

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".zip", ".kmz")

LocalNamer = Callable[[str, int], str]


def basename_namer(filename: str, index: int) -> str:
    return Path(filename).name


class RetrievalStage:
    """Moves feed files from the archive into a local scratch directory."""

    def __init__(self, client: Optional[ArchiveClient] = None):
        self.client = client or ArchiveClient()

    def fetch(
        self,
        base_path: str,
        filenames: Sequence[str],
        target_dir: Union[str, Path],
        local_name: LocalNamer = basename_namer,
    ) -> List[Path]:
        """
        Download files over one connection.

        Args:
            base_path: Remote directory the names are relative to
            filenames: Remote file names
            target_dir: Local directory, created if absent
            local_name: Maps (remote name, position) to the local file name

        Returns:
            Paths of the files that were downloaded

        Raises:
            TransportError: If the connection cannot be opened or drops
        """
        target = Path(target_dir)
        target.mkdir(parents=True, exist_ok=True)
        if not filenames:
            return []

        downloaded: List[Path] = []
        with self.client.session() as ftp:
            for index, filename in enumerate(filenames):
                local_path = target / local_name(filename, index)
                try:
                    with open(local_path, "wb") as f:
                        ftp.retrbinary(f"RETR {base_path}{filename}", f.write)
                except (ftplib.error_perm, ftplib.error_temp, ftplib.error_reply) as e:
                    local_path.unlink(missing_ok=True)
                    logger.warning(f"Download of {base_path}{filename} failed: {e}")
                    continue
                except (OSError, EOFError) as e:
                    local_path.unlink(missing_ok=True)
                    raise TransportError(f"Download of {base_path}{filename} failed: {e}") from e
                downloaded.append(local_path)

        logger.info(f"Downloaded {len(downloaded)}/{len(filenames)} files to {target}")
        return downloaded

    def decompress(
        self,
        target_dir: Union[str, Path],
        archives: Optional[Sequence[Path]] = None,
        failed: Optional[List[Path]] = None,
    ) -> List[Path]:
        """
        Extract every archive in the directory in place.

        Archives are left on disk. A corrupt archive is logged, skipped and
        appended to ``failed`` when that list is given. With ``archives``
        given, only those are extracted, so leftovers of an aborted cycle are
        not parsed again.

        Returns:
            Paths of the extracted files
        """
        target = Path(target_dir)
        extracted: List[Path] = []
        if archives is None:
            archives = target.iterdir()
        archives = sorted(Path(p) for p in archives if Path(p).suffix.lower() in ARCHIVE_SUFFIXES)

        for archive in archives:
            try:
                with zipfile.ZipFile(archive) as zf:
                    names = [n for n in zf.namelist() if not n.endswith("/")]
                    zf.extractall(target)
            except zipfile.BadZipFile as e:
                logger.warning(f"Skipping corrupt archive {archive.name}: {e}")
                if failed is not None:
                    failed.append(archive)
                continue
            extracted.extend(target / name for name in names)

        logger.info(f"Extracted {len(extracted)} files from {len(archives)} archives in {target}")
        return extracted

    def purge(self, target_dir: Union[str, Path]) -> int:
        """
        Delete everything in the directory, whatever its type.

        Returns:
            Number of entries removed
        """
        target = Path(target_dir)
        if not target.exists():
            return 0

        removed = 0
        for entry in target.iterdir():
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
            removed += 1

        logger.info(f"Purged {removed} entries from {target}")
        return removed
