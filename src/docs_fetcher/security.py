import ipaddress
import socket
from urllib.parse import urlparse

from loguru import logger

_LOCAL_HOSTNAMES = ("localhost", "localhost.localdomain")


def _is_unsafe_ip(ip_str: str) -> bool:
    # Scope IDs on link-local IPv6 (fe80::1%eth0) are not part of the address
    ip = ipaddress.ip_address(ip_str.split("%")[0])
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_multicast
    )


def is_safe_url(url: str) -> bool:
    """
    Check that a crawl target is a public http(s) host.
    Documentation links pointing at loopback, private, link-local or
    multicast addresses are refused before any request is made.
    """
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except (TypeError, ValueError, AttributeError):
        return False

    if parsed.scheme not in ("http", "https"):
        logger.warning(f"Blocked unsafe scheme: {parsed.scheme}")
        return False
    if not hostname:
        return False
    if hostname.lower() in _LOCAL_HOSTNAMES:
        logger.warning(f"Blocked localhost: {hostname}")
        return False

    # IP literals are checked without a DNS round trip
    try:
        unsafe_literal = _is_unsafe_ip(hostname)
    except ValueError:
        unsafe_literal = None
    if unsafe_literal is not None:
        if unsafe_literal:
            logger.warning(f"Blocked private/unsafe IP: {hostname}")
        return not unsafe_literal

    try:
        addresses = {str(res[4][0]) for res in socket.getaddrinfo(hostname, None)}
    except socket.gaierror:
        # Unresolvable hosts cannot be connected to either; the fetch will
        # fail on its own and be recorded as a page error.
        return True
    except OSError as e:
        logger.error(f"Error resolving {hostname}: {e}")
        return False

    for address in addresses:
        try:
            if _is_unsafe_ip(address):
                logger.warning(f"Blocked private/unsafe IP: {address} for {hostname}")
                return False
        except ValueError:
            continue
    return True
