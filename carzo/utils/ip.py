"""IP address helpers for privacy-preserving logs."""

from __future__ import annotations


def anonymize_ip(ip: str | None) -> str | None:
    """Zero out the host part of an IP address.

    IPv4 keeps the first three octets (``203.0.113.42`` -> ``203.0.113.0``);
    IPv6 keeps the first three groups and zeroes the rest. Anything else is
    returned unchanged.

    Examples:
        >>> anonymize_ip("192.168.1.77")
        '192.168.1.0'
        >>> anonymize_ip("2001:db8:85a3:8d3:1319:8a2e:370:7348")
        '2001:db8:85a3:0:0:0:0:0'
        >>> anonymize_ip(None) is None
        True
    """
    if not ip:
        return ip
    if ":" in ip:
        groups = ip.split(":")
        return ":".join(groups[:3] + ["0:0:0:0:0"])
    octets = ip.split(".")
    if len(octets) == 4:
        return ".".join(octets[:3] + ["0"])
    return ip
