"""Access to the DWD open data archive: connection, file index, retrieval."""

from dwd_sync.archive.client import ArchiveClient
from dwd_sync.archive.index import RemoteFileIndex, parse_mdtm
from dwd_sync.archive.retrieval import RetrievalStage

__all__ = [
    "ArchiveClient",
    "RemoteFileIndex",
    "parse_mdtm",
    "RetrievalStage",
]
