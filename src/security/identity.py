"""Client identity resolution for rate limiting.

The gateway runs behind a CDN or load balancer, so the socket peer is the
proxy. The real client address is taken from proxy headers in priority
order. Clients sharing a NAT or proxy share one identity.
"""

from collections.abc import Mapping

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Resolve the client address from forwarding headers.

    Priority: cf-connecting-ip, x-real-ip, then the first hop of
    x-forwarded-for. Falls back to "unknown".
    """
    cf_connecting_ip = headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    x_real_ip = headers.get("x-real-ip")
    if x_real_ip:
        return x_real_ip.strip()

    x_forwarded_for = headers.get("x-forwarded-for")
    if x_forwarded_for:
        first_hop = x_forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    return UNKNOWN_CLIENT
