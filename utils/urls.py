from urllib.parse import urlparse


def normalize_url(raw: str) -> str:
    """Add https:// when the input has no http(s) scheme"""
    raw = (raw or "").strip()
    if not raw:
        return raw
    if raw.startswith("http://") or raw.startswith("https://"):
        return raw
    return f"https://{raw}"


def extract_hostname(raw: str) -> str:
    """
    Lowercased hostname without a leading "www.".

    Accepts bare domains ("www.Example.com/path") as well as full URLs.
    """
    raw = (raw or "").strip()
    urlish = raw if "://" in raw else f"https://{raw}"
    hostname = urlparse(urlish).hostname
    if not hostname:
        # Malformed input: take everything up to the first slash
        hostname = raw.split("://", 1)[-1].split("/", 1)[0]
    hostname = hostname.lower()
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname
