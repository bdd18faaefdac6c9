# Copyright (c) Syntropy Systems
"""HTTP client for the router's band selection and signal endpoints."""
from __future__ import annotations

import base64
import hashlib
import logging
import re
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

import httpx
from typing_extensions import Self

from bandsweep.combos import AUTO, split_identity
from bandsweep.errors import AdapterTimeoutError, DeviceError, MetricsError
from bandsweep.models.results import SignalMetrics

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

AUTO_BAND_MASK = "7FFFFFFFFFFFFFFF"
NETWORK_MODE_LTE = "03"
NETWORK_MODE_AUTO = "00"
NETWORK_BAND_ALL = "3FFFFFFF"
SERVICE_AVAILABLE = "2"

_TOKEN_RE = re.compile(r'name="csrf_token"\s+content="([^"]+)"')


def band_mask(identity: str) -> str:
    """Return the LTE band bitmask for a combination as uppercase hex.

    Band ``n`` sets bit ``n - 1``; AUTO enables every band.
    """
    if identity == AUTO:
        return AUTO_BAND_MASK
    value = 0
    for band in split_identity(identity):
        try:
            value |= 1 << (int(band) - 1)
        except ValueError as e:
            msg = f"Band '{band}' is not numeric"
            raise DeviceError(msg) from e
    return f"{value:X}"


def enb_id_from_cell_id(cell_id: str) -> str:
    """Derive the eNB ID: the cell id in hex without its last two digits."""
    try:
        hex_id = f"{int(cell_id):x}"
    except ValueError:
        return ""
    if len(hex_id) <= 2:  # noqa: PLR2004
        return ""
    return str(int(hex_id[:-2], 16))


def _xml_text(root: ET.Element, tag: str) -> str:
    node = root.find(tag)
    if node is None or node.text is None:
        return ""
    return node.text.strip()


class RouterClient:
    """Talks to the router's web API over HTTP.

    Implements the device side (band configuration, service indicator) and
    the signal half of the metrics side.
    """

    base_url: str
    username: str
    _password: str
    _client: httpx.Client
    _token: str | None
    _logged_in: bool

    def __init__(  # noqa: PLR0913
        self,
        base_url: str,
        password: str,
        *,
        username: str = "admin",
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Router address (e.g., "http://192.168.8.1")
            password: Router admin password
            username: Router admin user
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)

        """
        self.base_url = base_url.rstrip("/")
        self.username = username
        self._password = password
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )
        self._token = None
        self._logged_in = False

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> Self:
        """Enter the client context and return self."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the client context and close the HTTP client."""
        self.close()

    # --- Session ---

    def _fetch_token(self) -> str:
        response = self._send("GET", "/html/home.html", error=DeviceError)
        match = _TOKEN_RE.search(response.text)
        if match is None:
            msg = "Could not find session token on router home page"
            raise DeviceError(msg)
        return match.group(1)

    def _password_hash(self, token: str) -> str:
        inner = base64.b64encode(
            hashlib.sha256(self._password.encode()).hexdigest().encode()
        ).decode()
        outer = hashlib.sha256(f"{self.username}{inner}{token}".encode()).hexdigest()
        return base64.b64encode(outer.encode()).decode()

    def login(self) -> None:
        """Log in and keep the session cookie."""
        token = self._fetch_token()
        body = (
            "<request>"
            f"<Username>{self.username}</Username>"
            f"<Password>{self._password_hash(token)}</Password>"
            "<password_type>4</password_type>"
            "</request>"
        )
        _ = self._post_xml("/api/user/login", body, token, error=DeviceError)
        self._logged_in = True
        self._token = None
        logger.info("Logged in to router at %s", self.base_url)

    def reset_session(self) -> None:
        """Drop cookies and token, then log in again."""
        self._client.cookies.clear()
        self._token = None
        self._logged_in = False
        self.login()

    def _ensure_session(self) -> str:
        if not self._logged_in:
            self.login()
        if self._token is None:
            self._token = self._fetch_token()
        return self._token

    # --- Transport ---

    def _send(
        self,
        method: str,
        path: str,
        *,
        error: type[DeviceError] | type[MetricsError],
        content: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = self._client.request(
                method, path, content=content, headers=headers
            )
            _ = response.raise_for_status()
        except httpx.TimeoutException as e:
            msg = f"Router request {method} {path} timed out"
            raise AdapterTimeoutError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"Router returned {e.response.status_code} for {method} {path}"
            raise error(msg) from e
        except httpx.RequestError as e:
            msg = f"Connection error: {e}"
            raise error(msg) from e
        return response

    def _parse(
        self, response: httpx.Response, error: type[DeviceError] | type[MetricsError]
    ) -> ET.Element:
        try:
            root = ET.fromstring(response.text)  # noqa: S314
        except ET.ParseError as e:
            msg = f"Router sent malformed XML: {e}"
            raise error(msg) from e
        if root.tag == "error":
            code = _xml_text(root, "code")
            self._token = None
            msg = f"Router error code {code or 'unknown'}"
            raise error(msg)
        return root

    def _post_xml(
        self,
        path: str,
        body: str,
        token: str,
        *,
        error: type[DeviceError] | type[MetricsError],
    ) -> ET.Element:
        response = self._send(
            "POST",
            path,
            error=error,
            content=body,
            headers={
                "__RequestVerificationToken": token,
                "Content-Type": "application/xml",
            },
        )
        new_token = response.headers.get("__RequestVerificationToken")
        if new_token:
            self._token = new_token.split("#")[0]
        return self._parse(response, error)

    def _get_xml(
        self, path: str, *, error: type[DeviceError] | type[MetricsError]
    ) -> ET.Element:
        token = self._ensure_session()
        response = self._send(
            "GET",
            path,
            error=error,
            headers={"__RequestVerificationToken": token},
        )
        return self._parse(response, error)

    # --- Device ---

    def apply_configuration(self, identity: str) -> None:
        """Restrict the modem to the bands of a combination."""
        mask = band_mask(identity)
        mode = NETWORK_MODE_AUTO if identity == AUTO else NETWORK_MODE_LTE
        body = (
            "<request>"
            f"<NetworkMode>{mode}</NetworkMode>"
            f"<NetworkBand>{NETWORK_BAND_ALL}</NetworkBand>"
            f"<LTEBand>{mask}</LTEBand>"
            "</request>"
        )
        token = self._ensure_session()
        root = self._post_xml("/api/net/net-mode", body, token, error=DeviceError)
        if (root.text or "").strip() != "OK":
            msg = f"Router did not acknowledge band change to {identity}"
            raise DeviceError(msg)
        logger.debug("Band mask %s applied for %s", mask, identity)

    def read_no_service_indicator(self) -> bool:
        """Return True when the modem reports no service."""
        root = self._get_xml("/api/monitoring/status", error=DeviceError)
        return _xml_text(root, "ServiceStatus") != SERVICE_AVAILABLE

    # --- Signal ---

    def read_signal_metrics(self) -> SignalMetrics:
        """Read RSRP/RSRQ/SINR, band and cell identifiers."""
        root = self._get_xml("/api/device/signal", error=MetricsError)
        cell_id = _xml_text(root, "cell_id")
        return SignalMetrics(
            band=_xml_text(root, "band"),
            rsrp=_xml_text(root, "rsrp"),
            rsrq=_xml_text(root, "rsrq"),
            sinr=_xml_text(root, "sinr"),
            cell_id=cell_id,
            enb_id=enb_id_from_cell_id(cell_id),
        )
