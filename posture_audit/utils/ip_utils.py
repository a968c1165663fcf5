"""IP address utilities for reverse-zone and DNSBL queries."""

import ipaddress

import dns.reversename


def is_valid_ipv4(ip: str) -> bool:
    """Validate if string is a valid IPv4 address.

    Args:
        ip: IP address string to validate.

    Returns:
        bool: True if valid IPv4, False otherwise.

    Examples:
        >>> is_valid_ipv4("203.0.113.45")
        True
        >>> is_valid_ipv4("256.0.0.1")
        False
        >>> is_valid_ipv4("::1")
        False
    """
    try:
        addr = ipaddress.ip_address(ip)
        return isinstance(addr, ipaddress.IPv4Address)
    except ValueError:
        return False


def is_valid_ipv6(ip: str) -> bool:
    """Validate if string is a valid IPv6 address.

    Scoped addresses (``fe80::1%eth0``) are rejected since they have no
    meaning in a reverse zone.

    Args:
        ip: IP address string to validate.

    Returns:
        bool: True if valid IPv6, False otherwise.
    """
    if "%" in ip:
        return False
    try:
        addr = ipaddress.ip_address(ip)
        return isinstance(addr, ipaddress.IPv6Address)
    except ValueError:
        return False


def expand_ipv6(ip: str) -> str:
    """Expand an IPv6 address to exactly eight four-digit groups.

    Args:
        ip: IPv6 address, possibly ``::`` compressed or IPv4-mapped.

    Returns:
        str: Fully expanded lowercase address.

    Raises:
        ValueError: If IP is not a valid IPv6 address.

    Examples:
        >>> expand_ipv6("2001:db8::1")
        '2001:0db8:0000:0000:0000:0000:0000:0001'
    """
    if not is_valid_ipv6(ip):
        raise ValueError(f"Invalid IPv6 address: {ip}")

    return ipaddress.IPv6Address(ip).exploded


def reverse_ip(ip: str) -> str:
    """Convert IPv4 address to reverse DNS format for DNSBL queries.

    DNSBL queries require reversed octets. For example:
    203.0.113.45 becomes 45.113.0.203

    Args:
        ip: IPv4 address in dotted-quad format.

    Returns:
        str: Reversed IP address.

    Raises:
        ValueError: If IP is not a valid IPv4 address.

    Examples:
        >>> reverse_ip("203.0.113.45")
        '45.113.0.203'
        >>> reverse_ip("192.168.1.1")
        '1.1.168.192'
    """
    if not is_valid_ipv4(ip):
        raise ValueError(f"Invalid IPv4 address: {ip}")

    octets = ip.split(".")
    return ".".join(reversed(octets))


def reverse_nibbles(ip: str) -> str:
    """Convert IPv6 address to dot-separated reversed nibbles.

    Every hex digit of the expanded address becomes one label, so the
    result always has 32 labels.

    Args:
        ip: IPv6 address.

    Returns:
        str: Reversed nibble string.

    Raises:
        ValueError: If IP is not a valid IPv6 address.

    Examples:
        >>> reverse_nibbles("2001:db8::1")[:9]
        '1.0.0.0.0'
    """
    digits = expand_ipv6(ip).replace(":", "")
    return ".".join(reversed(digits))


def reverse_address(ip: str) -> str:
    """Reverse an IPv4 or IPv6 address for zone lookups.

    Raises:
        ValueError: If IP is neither a valid IPv4 nor IPv6 address.
    """
    if is_valid_ipv4(ip):
        return reverse_ip(ip)
    if is_valid_ipv6(ip):
        return reverse_nibbles(ip)
    raise ValueError(f"Invalid IP address: {ip}")


def build_ptr_name(ip: str) -> str:
    """Build the reverse-zone name for a PTR lookup.

    Args:
        ip: IPv4 or IPv6 address.

    Returns:
        str: ``in-addr.arpa`` or ``ip6.arpa`` name without trailing dot.

    Raises:
        ValueError: If IP is not a valid address.

    Examples:
        >>> build_ptr_name("1.2.3.4")
        '4.3.2.1.in-addr.arpa'
    """
    if not (is_valid_ipv4(ip) or is_valid_ipv6(ip)):
        raise ValueError(f"Invalid IP address: {ip}")

    return dns.reversename.from_address(ip).to_text(omit_final_dot=True)


def build_dnsbl_query(target: str, zone: str, auth_key: str | None = None) -> str:
    """Build DNSBL query hostname for DNS lookup.

    IP targets are reversed (octets for IPv4, nibbles for IPv6); anything
    else is treated as a domain and used verbatim as the leftmost label.
    An authorization key, when given, is inserted between the target and
    the zone as required by Spamhaus DQS.

    Args:
        target: IPv4/IPv6 address or domain to check.
        zone: DNSBL zone domain (e.g., "zen.dq.spamhaus.net").
        auth_key: Optional DQS key.

    Returns:
        str: DNSBL query hostname.

    Raises:
        ValueError: If zone is empty.

    Examples:
        >>> build_dnsbl_query("203.0.113.45", "zen.spamhaus.org")
        '45.113.0.203.zen.spamhaus.org'
        >>> build_dnsbl_query("example.com", "dbl.dq.spamhaus.net", "KEY")
        'example.com.KEY.dbl.dq.spamhaus.net'
    """
    if not zone:
        raise ValueError("DNSBL zone cannot be empty")

    if is_valid_ipv4(target) or is_valid_ipv6(target):
        left = reverse_address(target)
    else:
        left = target

    if auth_key:
        return f"{left}.{auth_key}.{zone}"
    return f"{left}.{zone}"
