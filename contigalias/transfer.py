"""Sessions for browsing the ENA assembly archive over FTP or HTTPS."""

import ftplib
import logging
import posixpath
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    BLOCK_SIZE,
    ENA_ASSEMBLY_ROOT,
    ENA_FTP_HOST,
    ENA_HTTPS_BASE,
    FTP_TIMEOUT,
    HTTP_BACKOFF,
    HTTP_RETRIES,
    HTTP_TIMEOUT,
    REPORT_SUFFIX,
)
from .errors import FetchCancelledError, ReportNotFoundError, TransferError

logger = logging.getLogger(__name__)

ASSEMBLY_ACCESSION = re.compile(r"^GC[AF]_\d{9}\.\d+$")

# Errors ftplib can raise for a broken or refused exchange
FTP_ERRORS = (ftplib.Error, OSError, EOFError)


@dataclass(frozen=True)
class RemoteFile:
    """Name and size of a file in an archive directory."""

    name: str
    size: int


class ENABrowser(ABC):
    """Abstract session on the ENA archive."""

    @abstractmethod
    def connect(self) -> None:
        """Open the session."""

    @abstractmethod
    def disconnect(self) -> None:
        """Close the session. May raise TransferError."""

    @abstractmethod
    def list_directory(self, dir_path: str) -> list[str]:
        """List file names in a directory; ReportNotFoundError if it is missing."""

    @abstractmethod
    def get_file_size(self, file_path: str) -> Optional[int]:
        """Size in bytes of a remote file, or None if unknown."""

    @abstractmethod
    def download_file(
        self,
        remote_path: str,
        local_path: Path,
        expected_size: int,
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        """
        Stream a remote file to local_path.

        Returns False if the number of bytes written differs from
        expected_size. Raises TransferError on network/protocol failures and
        FetchCancelledError if cancel is set while the transfer runs.
        """

    def get_assembly_dir_path(self, accession: str) -> str:
        """
        Directory holding the reports of an assembly.

        GCA_000001405.28 -> /pub/databases/ena/assembly/GCA_000/GCA_000001/
        """
        if not ASSEMBLY_ACCESSION.match(accession):
            raise ValueError(f"Not an INSDC assembly accession: {accession!r}")
        return f"{ENA_ASSEMBLY_ROOT}/{accession[:7]}/{accession[:10]}/"

    def get_assembly_report_file(self, dir_path: str, accession: str) -> RemoteFile:
        """Find the sequence report of an assembly inside its directory."""
        report_name = f"{accession}{REPORT_SUFFIX}"
        names = self.list_directory(dir_path)
        if report_name not in names:
            raise ReportNotFoundError(f"{report_name} not found in {dir_path}")
        size = self.get_file_size(dir_path + report_name)
        if size is None:
            raise ReportNotFoundError(f"Size of {dir_path}{report_name} is unknown")
        return RemoteFile(name=report_name, size=size)


def _check_cancel(cancel: Optional[threading.Event], remote_path: str) -> None:
    if cancel is not None and cancel.is_set():
        raise FetchCancelledError(f"Download of {remote_path} cancelled")


class ENAFTPBrowser(ENABrowser):
    """Anonymous FTP session on ftp.ebi.ac.uk."""

    def __init__(self, host: str = ENA_FTP_HOST, timeout: float = FTP_TIMEOUT):
        self.host = host
        self.timeout = timeout
        self.ftp: Optional[ftplib.FTP] = None

    def connect(self) -> None:
        try:
            self.ftp = ftplib.FTP(self.host, timeout=self.timeout)
            self.ftp.login()
            self.ftp.voidcmd("TYPE I")
        except FTP_ERRORS as e:
            self.ftp = None
            raise TransferError(f"Could not connect to {self.host}: {e}") from e
        logger.debug("Connected to ftp://%s", self.host)

    def disconnect(self) -> None:
        if self.ftp is None:
            return
        ftp, self.ftp = self.ftp, None
        try:
            ftp.quit()
        except FTP_ERRORS as e:
            ftp.close()
            raise TransferError(f"Error closing connection to {self.host}: {e}") from e

    def _session(self) -> ftplib.FTP:
        if self.ftp is None:
            raise TransferError("FTP session is not connected")
        return self.ftp

    def list_directory(self, dir_path: str) -> list[str]:
        try:
            entries = self._session().nlst(dir_path)
        except ftplib.error_perm as e:
            # 550: no such directory
            raise ReportNotFoundError(f"{dir_path}: {e}") from e
        except FTP_ERRORS as e:
            raise TransferError(f"Listing {dir_path} failed: {e}") from e
        # Some servers return full paths, others bare names
        return [posixpath.basename(entry.rstrip("/")) for entry in entries]

    def get_file_size(self, file_path: str) -> Optional[int]:
        try:
            return self._session().size(file_path)
        except ftplib.error_perm:
            return None
        except FTP_ERRORS as e:
            raise TransferError(f"SIZE {file_path} failed: {e}") from e

    def download_file(
        self,
        remote_path: str,
        local_path: Path,
        expected_size: int,
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        ftp = self._session()
        with open(local_path, "wb") as fh:

            def write_block(block: bytes) -> None:
                _check_cancel(cancel, remote_path)
                fh.write(block)

            try:
                ftp.retrbinary(f"RETR {remote_path}", write_block, blocksize=BLOCK_SIZE)
            except FTP_ERRORS as e:
                raise TransferError(f"RETR {remote_path} failed: {e}") from e
        written = local_path.stat().st_size
        if written != expected_size:
            logger.warning(
                "Size mismatch for %s: expected %d bytes, got %d",
                remote_path, expected_size, written,
            )
            return False
        return True


class ENAHTTPBrowser(ENABrowser):
    """The same archive tree served over HTTPS."""

    def __init__(self, base_url: str = ENA_HTTPS_BASE, timeout: float = HTTP_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session: Optional[requests.Session] = None

    def connect(self) -> None:
        self.session = requests.Session()

        # Server errors inside one attempt; the caller retries whole downloads
        retry = Retry(
            total=HTTP_RETRIES,
            backoff_factor=HTTP_BACKOFF,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "HEAD"],
        )
        self.session.mount("https://", HTTPAdapter(max_retries=retry))
        logger.debug("Opened HTTPS session for %s", self.base_url)

    def disconnect(self) -> None:
        if self.session is None:
            return
        session, self.session = self.session, None
        session.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        if self.session is None:
            raise TransferError("HTTPS session is not connected")
        try:
            return self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransferError(f"{method} {path} failed: {e}") from e

    def list_directory(self, dir_path: str) -> list[str]:
        resp = self._request("GET", dir_path)
        if resp.status_code == 404:
            raise ReportNotFoundError(f"{dir_path} does not exist")
        if not resp.ok:
            raise TransferError(f"GET {dir_path} returned HTTP {resp.status_code}")
        names = []
        for href in re.findall(r'href="([^"?#]+)"', resp.text):
            name = posixpath.basename(href.rstrip("/"))
            if name and not href.endswith("/") and name not in names:
                names.append(name)
        return names

    def get_file_size(self, file_path: str) -> Optional[int]:
        resp = self._request("HEAD", file_path)
        if resp.status_code == 404:
            return None
        if not resp.ok:
            raise TransferError(f"HEAD {file_path} returned HTTP {resp.status_code}")
        length = resp.headers.get("Content-Length")
        return int(length) if length is not None else None

    def download_file(
        self,
        remote_path: str,
        local_path: Path,
        expected_size: int,
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        resp = self._request("GET", remote_path, stream=True)
        with resp:
            if not resp.ok:
                raise TransferError(f"GET {remote_path} returned HTTP {resp.status_code}")
            try:
                with open(local_path, "wb") as fh:
                    for block in resp.iter_content(chunk_size=BLOCK_SIZE):
                        _check_cancel(cancel, remote_path)
                        fh.write(block)
            except requests.RequestException as e:
                raise TransferError(f"Reading {remote_path} failed: {e}") from e
        written = local_path.stat().st_size
        if written != expected_size:
            logger.warning(
                "Size mismatch for %s: expected %d bytes, got %d",
                remote_path, expected_size, written,
            )
            return False
        return True


def build_browser(transport: str = "ftp") -> ENABrowser:
    """Create an unconnected browser for the given transport."""
    if transport == "ftp":
        return ENAFTPBrowser()
    if transport == "https":
        return ENAHTTPBrowser()
    raise ValueError(f"Unknown transport: {transport!r}")
