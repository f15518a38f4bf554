import socket
from unittest.mock import patch

from docs_fetcher.security import is_safe_url


def _resolves_to(*addresses):
    return [
        (socket.AF_INET, socket.SOCK_STREAM, 6, "", (address, 0))
        for address in addresses
    ]


def test_ssrf_basic():
    # Loopback
    assert not is_safe_url("http://127.0.0.1")
    assert not is_safe_url("http://localhost")
    assert not is_safe_url("http://[::1]")

    # Private
    assert not is_safe_url("http://192.168.1.100")
    assert not is_safe_url("http://10.0.0.1/docs")
    assert not is_safe_url("http://172.16.5.5")

    # Link-local
    assert not is_safe_url("http://169.254.169.254/latest/meta-data")

    # Schemes
    assert not is_safe_url("ftp://example.com")
    assert not is_safe_url("file:///etc/passwd")

    # With port
    assert not is_safe_url("http://127.0.0.1:8080")
    assert not is_safe_url("http://localhost:5000")


def test_malformed_urls():
    assert not is_safe_url("")
    assert not is_safe_url("https://")
    assert not is_safe_url(None)


def test_dns_rebinding_simulation():
    # A public-looking name that resolves to loopback
    with patch("socket.getaddrinfo", return_value=_resolves_to("127.0.0.1")):
        assert not is_safe_url("http://malicious-rebinding.com")


def test_any_unsafe_address_blocks():
    with patch(
        "socket.getaddrinfo", return_value=_resolves_to("93.184.216.34", "10.1.2.3")
    ):
        assert not is_safe_url("https://docs.example.com")


def test_public_host_allowed():
    with patch("socket.getaddrinfo", return_value=_resolves_to("93.184.216.34")):
        assert is_safe_url("https://docs.example.com/guide")


def test_unresolvable_host_allowed():
    with patch("socket.getaddrinfo", side_effect=socket.gaierror("no such host")):
        assert is_safe_url("https://does-not-exist.example")


def test_resolver_failure_blocks():
    with patch("socket.getaddrinfo", side_effect=OSError("resolver down")):
        assert not is_safe_url("https://docs.example.com")
