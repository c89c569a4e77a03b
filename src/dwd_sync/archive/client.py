"""
FTP access to the DWD open data server.

Anonymous login on opendata.dwd.de. Connection setup is retried with
exponential backoff; once the attempts are used up the failure surfaces as
TransportError and the feed cycle is aborted.
"""

import ftplib
import logging
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from dwd_sync.config.settings import get_settings
from dwd_sync.exceptions import TransportError
from dwd_sync.utils.retry import FTP_TRANSIENT_ERRORS, create_retry_decorator

logger = logging.getLogger(__name__)


class ArchiveClient:
    """Opens logged-in FTP connections to the archive."""

    def __init__(
        self,
        host: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[int] = None,
        connect_attempts: Optional[int] = None,
        ftp_factory: Callable[..., ftplib.FTP] = ftplib.FTP,
    ):
        """
        Initialize the archive client. Unset arguments come from settings.

        Args:
            host: FTP host (default: settings.ftp_host)
            user: Login user (default: settings.ftp_user)
            password: Login password (default: settings.ftp_password)
            timeout: Socket timeout in seconds (default: settings.ftp_timeout)
            connect_attempts: Connection attempts before giving up
            ftp_factory: Callable returning an unconnected ftplib.FTP
        """
        settings = get_settings()
        self.host = host or settings.ftp_host
        self.user = user or settings.ftp_user
        self.password = password if password is not None else settings.ftp_password
        self.timeout = timeout or settings.ftp_timeout
        self.connect_attempts = connect_attempts or settings.ftp_connect_attempts
        self.ftp_factory = ftp_factory

    def _open(self) -> ftplib.FTP:
        ftp = self.ftp_factory(timeout=self.timeout)
        try:
            ftp.connect(self.host)
            ftp.login(self.user, self.password)
        except FTP_TRANSIENT_ERRORS:
            ftp.close()
            raise
        return ftp

    def connect(self) -> ftplib.FTP:
        """
        Open a logged-in connection.

        Raises:
            TransportError: If the server cannot be reached after all attempts
        """
        opener = create_retry_decorator(max_attempts=self.connect_attempts)(self._open)
        try:
            ftp = opener()
        except FTP_TRANSIENT_ERRORS as e:
            raise TransportError(f"Cannot connect to {self.host}: {e}") from e
        logger.debug(f"Connected to {self.host} as {self.user}")
        return ftp

    @contextmanager
    def session(self) -> Generator[ftplib.FTP, None, None]:
        """Context manager yielding one connection, closed on exit."""
        ftp = self.connect()
        try:
            yield ftp
        finally:
            try:
                ftp.quit()
            except FTP_TRANSIENT_ERRORS as e:
                logger.debug(f"QUIT failed on {self.host}, closing socket: {e}")
                ftp.close()
