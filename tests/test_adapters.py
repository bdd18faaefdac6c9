# Copyright (c) Syntropy Systems
"""Tests for the router client and the speed test runner."""

import json
import subprocess

import httpx
import pytest

from bandsweep.adapters import (
    CompositeMetrics,
    RouterClient,
    SpeedtestCli,
    band_mask,
    enb_id_from_cell_id,
    parse_speedtest_json,
)
from bandsweep.adapters.router import AUTO_BAND_MASK
from bandsweep.errors import AdapterTimeoutError, DeviceError, MetricsError
from bandsweep.models.results import SignalMetrics, ThroughputResult

HOME_PAGE = '<html><meta name="csrf_token" content="tok123"/></html>'
OK = "<response>OK</response>"
SIGNAL = (
    "<response><band>3</band><rsrp>-95dBm</rsrp><rsrq>-10dB</rsrq>"
    "<sinr>12dB</sinr><cell_id>12345678</cell_id></response>"
)


class FakeRouter:
    """httpx MockTransport handler emulating the router web API."""

    def __init__(self, routes=None):
        self.routes = {
            "/html/home.html": lambda r: httpx.Response(200, text=HOME_PAGE),
            "/api/user/login": lambda r: httpx.Response(200, text=OK),
            "/api/net/net-mode": lambda r: httpx.Response(200, text=OK),
            "/api/monitoring/status": lambda r: httpx.Response(
                200, text="<response><ServiceStatus>2</ServiceStatus></response>"
            ),
            "/api/device/signal": lambda r: httpx.Response(200, text=SIGNAL),
        }
        self.routes.update(routes or {})
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404)
        return handler(request)

    def paths(self):
        return [r.url.path for r in self.requests]


def make_client(router):
    return RouterClient(
        "http://router.test", "secret", transport=httpx.MockTransport(router)
    )


class TestBandMask:
    """Tests for band bitmasks."""

    def test_single_band(self):
        assert band_mask("1") == "1"
        assert band_mask("3") == "4"
        assert band_mask("20") == "80000"

    def test_combination(self):
        assert band_mask("1+3+20") == "80005"

    def test_auto(self):
        assert band_mask("AUTO") == AUTO_BAND_MASK

    def test_non_numeric_rejected(self):
        with pytest.raises(DeviceError):
            _ = band_mask("1+x")


class TestEnbId:
    """Tests for eNB ID derivation."""

    def test_drops_last_two_hex_digits(self):
        # 12345678 = 0xBC614E -> 0xBC61
        assert enb_id_from_cell_id("12345678") == "48225"

    def test_invalid_or_short(self):
        assert enb_id_from_cell_id("") == ""
        assert enb_id_from_cell_id("abc") == ""
        assert enb_id_from_cell_id("255") == ""


class TestRouterClient:
    """Tests for RouterClient against a mocked router."""

    def test_login_sends_hashed_password(self):
        router = FakeRouter()

        with make_client(router) as client:
            client.login()

        login = router.requests[-1]
        assert login.url.path == "/api/user/login"
        assert login.headers["__RequestVerificationToken"] == "tok123"
        body = login.content.decode()
        assert "<Username>admin</Username>" in body
        assert "secret" not in body
        assert "<password_type>4</password_type>" in body

    def test_apply_configuration_posts_mask(self):
        router = FakeRouter()

        with make_client(router) as client:
            client.apply_configuration("1+3")

        body = router.requests[-1].content.decode()
        assert "<NetworkMode>03</NetworkMode>" in body
        assert "<LTEBand>5</LTEBand>" in body
        assert "/api/user/login" in router.paths()

    def test_apply_auto_uses_auto_mode(self):
        router = FakeRouter()

        with make_client(router) as client:
            client.apply_configuration("AUTO")

        body = router.requests[-1].content.decode()
        assert "<NetworkMode>00</NetworkMode>" in body
        assert f"<LTEBand>{AUTO_BAND_MASK}</LTEBand>" in body

    def test_apply_error_response_raises(self):
        router = FakeRouter(
            {
                "/api/net/net-mode": lambda r: httpx.Response(
                    200, text="<error><code>125003</code><message/></error>"
                )
            }
        )

        with make_client(router) as client, pytest.raises(DeviceError, match="125003"):
            client.apply_configuration("3")

    def test_http_error_raises_device_error(self):
        router = FakeRouter({"/api/net/net-mode": lambda r: httpx.Response(500)})

        with make_client(router) as client, pytest.raises(DeviceError):
            client.apply_configuration("3")

    def test_timeout_raises_adapter_timeout(self):
        def slow(request):
            raise httpx.ReadTimeout("slow", request=request)

        router = FakeRouter({"/api/net/net-mode": slow})

        with make_client(router) as client, pytest.raises(AdapterTimeoutError):
            client.apply_configuration("3")

    def test_missing_token_raises(self):
        router = FakeRouter(
            {"/html/home.html": lambda r: httpx.Response(200, text="<html></html>")}
        )

        with make_client(router) as client, pytest.raises(DeviceError):
            client.login()

    def test_service_indicator(self):
        router = FakeRouter()

        with make_client(router) as client:
            assert client.read_no_service_indicator() is False

        router = FakeRouter(
            {
                "/api/monitoring/status": lambda r: httpx.Response(
                    200, text="<response><ServiceStatus>1</ServiceStatus></response>"
                )
            }
        )
        with make_client(router) as client:
            assert client.read_no_service_indicator() is True

    def test_read_signal_metrics(self):
        with make_client(FakeRouter()) as client:
            signal = client.read_signal_metrics()

        assert signal == SignalMetrics(
            band="3",
            rsrp="-95dBm",
            rsrq="-10dB",
            sinr="12dB",
            cell_id="12345678",
            enb_id="48225",
        )

    def test_malformed_signal_raises_metrics_error(self):
        router = FakeRouter(
            {"/api/device/signal": lambda r: httpx.Response(200, text="<response>")}
        )

        with make_client(router) as client, pytest.raises(MetricsError):
            _ = client.read_signal_metrics()

    def test_reset_session_logs_in_again(self):
        router = FakeRouter()

        with make_client(router) as client:
            client.login()
            client.reset_session()

        assert router.paths().count("/api/user/login") == 2


class TestSpeedtest:
    """Tests for the speedtest-cli runner."""

    def test_parse_converts_bits_to_mbps(self):
        result = parse_speedtest_json(
            json.dumps({"download": 52_500_000, "upload": 12_000_000, "ping": 31.5})
        )

        assert result == ThroughputResult(download=52.5, upload=12.0, ping=31.5)

    def test_parse_garbage_is_zero(self):
        assert parse_speedtest_json("not json") == ThroughputResult()
        assert parse_speedtest_json("{}") == ThroughputResult()

    def test_measure_success(self, monkeypatch):
        monkeypatch.setattr(
            "bandsweep.adapters.speedtest.shutil.which", lambda name: f"/usr/bin/{name}"
        )

        def fake_run(cmd, **kwargs):
            assert cmd == ["/usr/bin/speedtest-cli", "--json"]
            assert kwargs["timeout"] == 60.0
            stdout = json.dumps({"download": 10_000_000, "upload": 2_000_000, "ping": 40})
            return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

        monkeypatch.setattr("bandsweep.adapters.speedtest.subprocess.run", fake_run)

        result = SpeedtestCli(timeout=60.0).measure_throughput()

        assert result.download == 10.0
        assert result.upload == 2.0
        assert not result.failed

    def test_missing_tool_is_zero(self, monkeypatch):
        monkeypatch.setattr("bandsweep.adapters.speedtest.shutil.which", lambda name: None)
        runner = SpeedtestCli()

        assert runner.measure_throughput().failed
        assert "not found" in (runner.last_error or "")

    def test_dns_failure_is_zero(self, monkeypatch):
        monkeypatch.setattr(
            "bandsweep.adapters.speedtest.shutil.which", lambda name: f"/usr/bin/{name}"
        )
        monkeypatch.setattr(
            "bandsweep.adapters.speedtest.subprocess.run",
            lambda cmd, **kw: subprocess.CompletedProcess(
                cmd, 1, stdout="", stderr="Temporary failure in name resolution"
            ),
        )
        runner = SpeedtestCli()

        assert runner.measure_throughput() == ThroughputResult()
        assert runner.last_error == "Temporary failure in name resolution"

    def test_timeout_is_zero(self, monkeypatch):
        monkeypatch.setattr(
            "bandsweep.adapters.speedtest.shutil.which", lambda name: f"/usr/bin/{name}"
        )

        def hang(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr("bandsweep.adapters.speedtest.subprocess.run", hang)
        runner = SpeedtestCli(timeout=5)

        assert runner.measure_throughput().failed
        assert "timed out" in (runner.last_error or "")


class TestCompositeMetrics:
    """Tests for combining signal and throughput sources."""

    def test_delegates(self):
        class Signal:
            def read_signal_metrics(self):
                return SignalMetrics(band="7")

        class Throughput:
            def measure_throughput(self):
                return ThroughputResult(download=1.0, upload=1.0)

        metrics = CompositeMetrics(Signal(), Throughput())

        assert metrics.read_signal_metrics().band == "7"
        assert metrics.measure_throughput().download == 1.0
