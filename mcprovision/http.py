from __future__ import annotations

from contextlib import contextmanager
from email.message import Message
from pathlib import Path
from typing import IO, Any, Callable, Iterator, Mapping
import ipaddress
import json
import logging
import tempfile
import urllib.error
import urllib.parse
import urllib.request

from .exceptions import DownloadError, HashMismatch, HttpStatusError, McProvisionError
from .hashing import HashWithAlgorithm
from .utils import is_not_found

logger = logging.getLogger(__name__)

MAX_TEXT_RESPONSE_BYTES = 16 * 1024 * 1024
MAX_DOWNLOAD_BYTES = 512 * 1024 * 1024
DOWNLOAD_CHUNK_SIZE = 8192

USER_AGENT = "mcprovision/0.1.0 (+https://github.com/)"

ProgressCallback = Callable[[int, "int | None"], None]


def parse_json(data: bytes) -> Any:
    return json.loads(data.decode("utf-8"))


@contextmanager
def invalid_response(url: str) -> Iterator[None]:
    """Turn errors from reading a malformed remote document into ``DownloadError``."""
    try:
        yield
    except McProvisionError:
        raise
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
        raise DownloadError(f"Invalid response from {url}: {exc!r}") from exc


class HttpClient:
    def __init__(
        self,
        timeout_seconds: int = 30,
        max_text_response_bytes: int = MAX_TEXT_RESPONSE_BYTES,
        max_download_bytes: int = MAX_DOWNLOAD_BYTES,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_text_response_bytes = max_text_response_bytes
        self.max_download_bytes = max_download_bytes
        self.user_agent = USER_AGENT

    def _request(self, url: str, headers: Mapping[str, str] | None = None) -> urllib.request.Request:
        self._validate_url(url)
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)
        return urllib.request.Request(url, headers=request_headers)

    def _fetch(self, url: str, headers: Mapping[str, str] | None = None) -> tuple[bytes, Message]:
        try:
            with urllib.request.urlopen(
                self._request(url, headers), timeout=self.timeout_seconds
            ) as response:
                payload = self._read_limited(
                    response,
                    max_bytes=self.max_text_response_bytes,
                    url=url,
                )
                return payload, response.headers
        except urllib.error.HTTPError as exc:
            raise HttpStatusError(url, exc.code) from exc
        except urllib.error.URLError as exc:
            raise DownloadError(f"Request failed for {url}: {exc}") from exc

    @staticmethod
    def with_params(url: str, params: Mapping[str, str] | None) -> str:
        if not params:
            return url
        return f"{url}?{urllib.parse.urlencode(params)}"

    def get_bytes(self, url: str) -> bytes:
        payload, _ = self._fetch(url)
        return payload

    def get_json(self, url: str, params: Mapping[str, str] | None = None) -> Any:
        url = self.with_params(url, params)
        payload = self.get_bytes(url)
        try:
            return parse_json(payload)
        except ValueError as exc:
            raise DownloadError(f"Invalid JSON from {url}") from exc

    def get_json_or_none(self, url: str, params: Mapping[str, str] | None = None) -> Any | None:
        try:
            return self.get_json(url, params)
        except HttpStatusError as exc:
            if exc.status == 404:
                return None
            raise

    def fetch_with_etag(
        self,
        url: str,
        cache_file: Path,
        parse: Callable[[bytes], Any] | None = parse_json,
    ) -> Any:
        """Fetch ``url`` into ``cache_file``, revalidating the copy with its ETag.

        The ETag lives next to the cache file in ``<name>.etag``. It is cleared
        before the new body is written so a half-written cache is never
        treated as fresh.
        """
        etag_file = cache_file.with_name(cache_file.name + ".etag")
        headers: dict[str, str] = {}
        try:
            etag = etag_file.read_text(encoding="utf-8")
        except OSError as exc:
            if not is_not_found(exc):
                raise
            etag = ""
        if etag and cache_file.exists():
            headers["If-None-Match"] = etag

        try:
            payload, response_headers = self._fetch(url, headers)
        except HttpStatusError as exc:
            if exc.status != 304:
                raise
            logger.debug("%s not modified, using %s", url, cache_file)
            return self._parse(url, cache_file.read_bytes(), parse)

        cache_file.parent.mkdir(parents=True, exist_ok=True)
        etag_file.write_text("", encoding="utf-8")
        cache_file.write_bytes(payload)
        result = self._parse(url, payload, parse)
        new_etag = response_headers.get("ETag")
        if new_etag:
            etag_file.write_text(new_etag, encoding="utf-8")
        return result

    @staticmethod
    def _parse(url: str, payload: bytes, parse: Callable[[bytes], Any] | None) -> Any:
        if parse is None:
            return payload
        try:
            return parse(payload)
        except ValueError as exc:
            raise DownloadError(f"Invalid JSON from {url}") from exc

    def download_verified(
        self,
        url: str,
        destination: Path,
        expected: HashWithAlgorithm,
        progress: ProgressCallback | None = None,
    ) -> Path:
        if expected.matches_file(destination):
            logger.debug("%s already matches %s", destination, expected)
            return destination
        return self.download(url, destination, expected=expected, progress=progress)

    def download(
        self,
        url: str,
        destination: Path,
        expected: HashWithAlgorithm | None = None,
        progress: ProgressCallback | None = None,
    ) -> Path:
        """Stream ``url`` into ``destination`` through a temp file in the same directory.

        The destination is only replaced once the size limit and the optional
        expected hash both check out.
        """
        destination.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile("wb", delete=False, dir=destination.parent)
        tmp_path = Path(handle.name)
        try:
            with handle:
                try:
                    with urllib.request.urlopen(
                        self._request(url), timeout=self.timeout_seconds
                    ) as response:
                        self._stream(response, handle, destination.name, progress)
                except urllib.error.HTTPError as exc:
                    raise HttpStatusError(url, exc.code) from exc
                except urllib.error.URLError as exc:
                    raise DownloadError(f"Download failed for {url}: {exc}") from exc
            if expected is not None and not expected.matches_file(tmp_path):
                raise HashMismatch(
                    f"File downloaded from {url} did not match the expected hash {expected}."
                )
            tmp_path.replace(destination)
        finally:
            tmp_path.unlink(missing_ok=True)
        return destination

    def _stream(
        self,
        response,
        handle: IO[bytes],
        name: str,
        progress: ProgressCallback | None,
    ) -> int:
        total = _content_length(response)
        if total is not None and total > self.max_download_bytes:
            raise DownloadError(f"Download for {name} exceeds the size limit.")
        received = 0
        for chunk in iter(lambda: response.read(DOWNLOAD_CHUNK_SIZE), b""):
            received += len(chunk)
            if received > self.max_download_bytes:
                raise DownloadError(f"Download for {name} exceeded the allowed size limit.")
            handle.write(chunk)
            if progress is not None:
                progress(received, total)
        return received

    @staticmethod
    def _validate_url(url: str) -> None:
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme.lower() != "https":
            raise DownloadError(f"Blocked URL with unsupported scheme: {url}")
        if not parsed.hostname:
            raise DownloadError(f"Blocked URL with missing host: {url}")
        try:
            address = ipaddress.ip_address(parsed.hostname)
        except ValueError:
            return
        if not address.is_global or address.is_multicast:
            raise DownloadError(f"Blocked URL targeting disallowed address: {url}")

    @staticmethod
    def _read_limited(response, max_bytes: int, url: str) -> bytes:
        payload = response.read(max_bytes + 1)
        if len(payload) > max_bytes:
            raise DownloadError(f"Response from {url} exceeded the allowed size limit.")
        return payload


def _content_length(response) -> int | None:
    value = response.headers.get("Content-Length")
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None
