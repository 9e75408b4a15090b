import hashlib


def hash_ip(client_ip: str, salt: str) -> str:
    """
    One-way hash of a client IP. Deterministic for a given salt so that
    repeat submitters can be correlated without storing the address.
    """
    normalized = (client_ip or "unknown").strip().lower()
    return hashlib.sha256(f"{salt}{normalized}".encode("utf-8")).hexdigest()


def client_ip_from_headers(headers, fallback: str = "unknown") -> str:
    """
    Resolve the originating IP from proxy headers.
    x-forwarded-for may hold a chain; the first entry is the client.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return fallback
