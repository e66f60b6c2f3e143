from urllib.parse import urlparse, urlunparse

import tldextract

# Bundled public suffix snapshot only; the watchdog never fetches the live list
_extract = tldextract.TLDExtract(suffix_list_urls=())


def page_origin(url: str) -> str:
    """scheme://host[:port] of a URL, "" for anything without a host."""
    if not url:
        return ""
    p = urlparse(url)
    if not p.scheme or not p.netloc:
        return ""
    return f"{p.scheme}://{p.netloc}"


def origin_and_path(url: str) -> str:
    """
    Comparable form for canonical checks:
    - scheme and host lowercased
    - trailing slash ignored
    - no query / fragment
    """
    if not url:
        return ""
    p = urlparse(url)
    path = p.path.rstrip("/")
    return urlunparse((p.scheme.lower(), p.netloc.lower(), path, "", "", ""))


def registered_domain(url: str) -> str:
    """
    example.co.uk for https://blog.example.co.uk/x.
    Falls back to the bare host for IPs and localhost.
    """
    if not url:
        return ""
    ext = _extract(url)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}".lower()
    return (urlparse(url).hostname or "").lower()


def same_site(url_a: str, url_b: str) -> bool:
    return registered_domain(url_a) == registered_domain(url_b)
