"""FTP/FTPS remote store."""

from __future__ import annotations

import ftplib
import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from ..exceptions import (
    ListingError,
    RemoteConnectionError,
    TransferError,
)
from ..sync.scanner import Entry, Tree
from ..utils import (
    NOT_IMPLEMENTED_CODES,
    format_size,
    join_remote_path,
    parse_mdtm_response,
)

if TYPE_CHECKING:
    from ..config import SyncConfig

logger = logging.getLogger(__name__)

# Errors raised by ftplib for negative or unexpected server replies
FTP_REPLY_ERRORS = (
    ftplib.error_reply,
    ftplib.error_temp,
    ftplib.error_perm,
    ftplib.error_proto,
)

# Reply code for "service not available, closing control connection"
SERVICE_CLOSING = "421"

# Reply code for a successful login
LOGGED_IN = "230"


def _reply_code(error: Exception) -> str:
    return str(error)[:3]


class FTPStore:
    """RemoteStore implementation backed by an FTP or FTPS server.

    Examples:
        >>> with FTPStore("ftp.example.com", user="me", password="secret") as store:
        ...     tree = store.list_recursive("/backup")
    """

    def __init__(
        self,
        host: str,
        port: int = 21,
        user: str = "anonymous",
        password: str = "",
        use_tls: bool = True,
        timeout: Optional[float] = None,
        encoding: str = "utf-8",
    ):
        """Initialize FTP store.

        Args:
            host: Server host name
            port: Server port
            user: Account user name
            password: Account password
            use_tls: Use explicit FTPS (AUTH TLS, then PROT P after login)
            timeout: Socket timeout in seconds, None to block indefinitely
            encoding: Encoding of remote file names
        """
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.encoding = encoding

        self._ftp: ftplib.FTP | None = None
        self._mlsd_supported: bool | None = None

    @classmethod
    def from_config(cls, config: SyncConfig) -> FTPStore:
        """Create an FTP store from a sync configuration."""
        return cls(
            host=config.server,
            port=config.port,
            user=config.user,
            password=config.password,
            use_tls=config.use_tls,
            timeout=config.timeout,
        )

    # =========================================================================
    # Connection handling
    # =========================================================================

    def connect(self) -> None:
        """Connect and log in to the server.

        Raises:
            RemoteConnectionError: If the server cannot be reached or login fails
        """
        ftp: ftplib.FTP
        if self.use_tls:
            ftp = ftplib.FTP_TLS(encoding=self.encoding)
        else:
            ftp = ftplib.FTP(encoding=self.encoding)

        try:
            ftp.connect(self.host, self.port, timeout=self.timeout)
            response = ftp.login(self.user, self.password)
        except FTP_REPLY_ERRORS as e:
            ftp.close()
            raise RemoteConnectionError(
                f"Unable to log in to {self.host}:{self.port}: {e}"
            ) from e
        except (OSError, EOFError) as e:
            ftp.close()
            raise RemoteConnectionError(
                f"Unable to connect to {self.host}:{self.port}: {e}"
            ) from e

        if not response.startswith(LOGGED_IN):
            ftp.close()
            raise RemoteConnectionError(
                f"Unable to connect status returned = {response}"
            )

        try:
            if self.use_tls:
                # Secure the data connection as well
                ftp.prot_p()
            ftp.voidcmd("TYPE I")
        except (*FTP_REPLY_ERRORS, OSError, EOFError) as e:
            ftp.close()
            raise RemoteConnectionError(
                f"Unable to set up session on {self.host}:{self.port}: {e}"
            ) from e

        logger.debug("Connected to %s:%s as %s", self.host, self.port, self.user)
        self._ftp = ftp

    def close(self) -> None:
        """Log out and close the connection."""
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except (*FTP_REPLY_ERRORS, OSError, EOFError):
            self._ftp.close()
        finally:
            self._ftp = None

    def __enter__(self) -> FTPStore:
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def ftp(self) -> ftplib.FTP:
        if self._ftp is None:
            raise RemoteConnectionError("Not connected to FTP server")
        return self._ftp

    def _call(self, path: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run an ftplib call, translating errors for a single entry."""
        try:
            return func(*args)
        except FTP_REPLY_ERRORS as e:
            if _reply_code(e) == SERVICE_CLOSING:
                raise RemoteConnectionError(f"Server closed connection: {e}") from e
            raise TransferError(path, str(e), code=_reply_code(e)) from e
        except (OSError, EOFError) as e:
            raise RemoteConnectionError(f"Connection lost: {e}") from e

    # =========================================================================
    # Listing
    # =========================================================================

    def list_recursive(self, root: str) -> Tree:
        try:
            children = self._list_directory(root)
        except TransferError as e:
            raise ListingError(root, e.reason) from e

        tree = Tree(root)
        self._scan(root, children, tree)
        return tree

    def _scan(self, directory: str, children: list[tuple[str, bool]], tree: Tree):
        for name, is_dir in sorted(children):
            path = join_remote_path(directory, name)
            tree.append(Entry(path=path, is_directory=is_dir))
            if not is_dir:
                continue
            try:
                grandchildren = self._list_directory(path)
            except TransferError as e:
                # Skip directories we can't read
                logger.warning("Cannot list remote directory %s: %s", path, e.reason)
                continue
            self._scan(path, grandchildren, tree)

    def _list_directory(self, path: str) -> list[tuple[str, bool]]:
        """Return (name, is_directory) pairs for the entries of a directory."""
        if self._mlsd_supported is not False:
            try:
                # "type" is a default fact, so no OPTS MLST is sent
                facts = self._call(path, lambda: list(self.ftp.mlsd(path)))
            except TransferError as e:
                if self._mlsd_supported is not None or (
                    e.code not in NOT_IMPLEMENTED_CODES
                ):
                    raise
                logger.debug("MLSD not supported, falling back to NLST")
                self._mlsd_supported = False
            else:
                self._mlsd_supported = True
                children = []
                for name, entry_facts in facts:
                    entry_type = entry_facts.get("type", "").lower()
                    if entry_type in ("cdir", "pdir") or name in (".", ".."):
                        continue
                    children.append((name, entry_type == "dir"))
                return children

        try:
            names = self._call(path, self.ftp.nlst, path)
        except TransferError:
            # Some servers answer NLST on an empty directory with 550
            if self._is_directory(path):
                return []
            raise

        children = []
        for raw_name in names:
            name = posixpath.basename(raw_name.rstrip("/"))
            if not name or name in (".", ".."):
                continue
            children.append((name, self._is_directory(join_remote_path(path, name))))
        return children

    def _is_directory(self, path: str) -> bool:
        current = self._call(path, self.ftp.pwd)
        try:
            self._call(path, self.ftp.cwd, path)
        except TransferError:
            return False
        self._call(path, self.ftp.cwd, current)
        return True

    # =========================================================================
    # Transfers
    # =========================================================================

    def upload(self, local_path: Union[str, Path], remote_path: str) -> None:
        try:
            f = open(local_path, "rb")
        except OSError as e:
            raise TransferError(remote_path, f"cannot read {local_path}: {e}") from e

        with f:
            self._call(remote_path, self.ftp.storbinary, f"STOR {remote_path}", f)
            size = f.tell()
        logger.debug(
            "Uploaded %s to %s (%s)", local_path, remote_path, format_size(size)
        )

    def download(self, remote_path: str, local_path: Union[str, Path]) -> None:
        try:
            f = open(local_path, "wb")
        except OSError as e:
            raise TransferError(remote_path, f"cannot write {local_path}: {e}") from e

        try:
            with f:
                self._call(
                    remote_path, self.ftp.retrbinary, f"RETR {remote_path}", f.write
                )
                size = f.tell()
        except TransferError:
            Path(local_path).unlink(missing_ok=True)
            raise
        logger.debug(
            "Downloaded %s to %s (%s)", remote_path, local_path, format_size(size)
        )

    # =========================================================================
    # Directory and file management
    # =========================================================================

    def make_directory(self, remote_path: str) -> None:
        self._call(remote_path, self.ftp.mkd, remote_path)

    def make_directories(self, remote_path: str) -> None:
        current = "/" if remote_path.startswith("/") else ""
        for part in remote_path.split("/"):
            if not part:
                continue
            current = join_remote_path(current, part) if current else part
            if not self._is_directory(current):
                logger.debug("Creating remote directory %s", current)
                self.make_directory(current)

    def delete_file(self, remote_path: str) -> None:
        self._call(remote_path, self.ftp.delete, remote_path)

    def remove_directory(self, remote_path: str) -> None:
        self._call(remote_path, self.ftp.rmd, remote_path)

    def get_modified_time(self, remote_path: str) -> Optional[float]:
        try:
            response = self._call(remote_path, self.ftp.sendcmd, f"MDTM {remote_path}")
        except TransferError as e:
            logger.debug("MDTM failed for %s: %s", remote_path, e.reason)
            return None
        return parse_mdtm_response(response)

    def exists(self, remote_path: str) -> bool:
        if self._is_directory(remote_path):
            return True
        try:
            self._call(remote_path, self.ftp.size, remote_path)
        except TransferError:
            return False
        return True

    def current_working_directory(self) -> str:
        return self._call("", self.ftp.pwd)

    def change_working_directory(self, remote_path: str) -> None:
        self._call(remote_path, self.ftp.cwd, remote_path)
