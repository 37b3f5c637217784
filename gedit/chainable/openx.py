"""
Source acquisition component.

Resolves a user supplied identifier into a readable byte stream. Identifiers that
start with ``http`` are fetched with ``requests``; everything else is opened from
the local filesystem.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import BinaryIO, Optional, Callable

import requests
import urllib3

from . import ChainComponent, OpenError, OpenErrorKind


REMOTE_PREFIX = "http"
DEFAULT_TIMEOUT = 10.0  # seconds


class SourceOrigin(Enum):
    LOCAL_FILE = "local-file"
    REMOTE_URL = "remote-url"


def select_origin(identifier: str) -> SourceOrigin:
    """Classify an identifier by a plain textual prefix check."""
    if identifier.startswith(REMOTE_PREFIX):
        return SourceOrigin.REMOTE_URL
    return SourceOrigin.LOCAL_FILE


class SourceHandle:
    """
    Scoped binary stream bound to exactly one origin.

    The underlying file or HTTP connection is released on the first call to
    ``close()``; later calls do nothing. Use as a context manager.
    """

    def __init__(self, identifier: str, origin: SourceOrigin, stream: BinaryIO,
                 release: Optional[Callable[[], None]] = None):
        self.identifier = identifier
        self.origin = origin
        self.stream = stream
        self._release = release or stream.close
        self.closed = False

    @property
    def is_local(self) -> bool:
        return self.origin is SourceOrigin.LOCAL_FILE

    def read(self, size: int = -1) -> bytes:
        return self.stream.read(size)

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return f"SourceHandle({self.identifier!r}, {self.origin.value})"


class RemoteStream:
    """
    Response body reader for a remote source.

    The body keeps arriving after ``URLFileReader.open`` returns, so transport
    failures during a read are raised as OpenError with the same kinds.
    """

    def __init__(self, raw, identifier: str, timeout: float):
        self.raw = raw
        self.identifier = identifier
        self.timeout = timeout

    @property
    def closed(self) -> bool:
        return self.raw.closed

    def read(self, size: int = -1) -> bytes:
        details = {'operation': 'read', 'path': self.identifier}
        try:
            return self.raw.read(None if size is None or size < 0 else size)
        except (requests.Timeout, urllib3.exceptions.TimeoutError) as e:
            raise OpenError(f"Timed out after {self.timeout:g}s while reading: {e}", OpenErrorKind.TIMEOUT,
                            details=details) from e
        except (requests.RequestException, urllib3.exceptions.HTTPError, ConnectionError) as e:
            raise OpenError(f"Connection failed while reading: {e}", OpenErrorKind.NETWORK_ERROR,
                            details=details) from e

    def close(self):
        self.raw.close()


class FileReader(ABC):
    """Opens one kind of source."""

    origin: SourceOrigin

    @abstractmethod
    def open(self, identifier: str) -> SourceHandle:
        pass


class LocalFileReader(FileReader):
    origin = SourceOrigin.LOCAL_FILE

    def open(self, identifier: str) -> SourceHandle:
        details = {'operation': 'open', 'path': identifier}
        try:
            stream = open(identifier, "rb")
        except FileNotFoundError as e:
            raise OpenError(str(e), OpenErrorKind.NOT_FOUND, details=details) from e
        except PermissionError as e:
            raise OpenError(str(e), OpenErrorKind.PERMISSION_DENIED, details=details) from e
        except OSError as e:
            raise OpenError(str(e), OpenErrorKind.IO_ERROR, details=details) from e
        return SourceHandle(identifier, self.origin, stream)


class URLFileReader(FileReader):
    origin = SourceOrigin.REMOTE_URL

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout

    def open(self, identifier: str) -> SourceHandle:
        details = {'operation': 'open', 'path': identifier}
        try:
            response = self.session.get(identifier, timeout=self.timeout, stream=True)
        except requests.Timeout as e:
            raise OpenError(f"Timed out after {self.timeout:g}s: {e}", OpenErrorKind.TIMEOUT,
                            details=details) from e
        except requests.RequestException as e:
            raise OpenError(str(e), OpenErrorKind.NETWORK_ERROR, details=details) from e

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            response.close()
            raise OpenError(str(e), OpenErrorKind.NETWORK_ERROR,
                            details={**details, 'status_code': response.status_code}) from e

        # Let urllib3 undo any Content-Encoding while the decoder reads.
        response.raw.decode_content = True
        stream = RemoteStream(response.raw, identifier, self.timeout)
        return SourceHandle(identifier, self.origin, stream, release=response.close)


class SourceOpener(ChainComponent):
    """Component that picks a reader for an identifier and opens it."""

    error_class = OpenError

    def __init__(self, url_reader: Optional[URLFileReader] = None,
                 local_reader: Optional[LocalFileReader] = None):
        super().__init__("SourceOpener")
        self.url_reader = url_reader
        self.local_reader = local_reader or LocalFileReader()

    def reader_for(self, identifier: str) -> FileReader:
        if select_origin(identifier) is SourceOrigin.REMOTE_URL:
            if self.url_reader is None:
                self.url_reader = URLFileReader()
            return self.url_reader
        return self.local_reader

    def process(self, identifier: str) -> SourceHandle:
        reader = self.reader_for(identifier)
        self.logger.info(f"Using {reader.origin.value} reader for '{identifier}'")

        try:
            handle = reader.open(identifier)
        except OpenError as e:
            e.component = self.name
            raise
        self.logger.info(f"Opened '{identifier}'")
        return handle


def open_source(identifier: str) -> SourceHandle:
    """
    Convenience function to open a GIF source.

    Args:
        identifier: Local path, or a URL starting with ``http``

    Returns:
        SourceHandle wrapping the open stream
    """
    return SourceOpener().execute(identifier)
