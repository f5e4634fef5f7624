# src/auditor/utils/url_utils.py
import logging
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class UrlUtils:
    """A collection of static methods for URL host handling."""

    @staticmethod
    def get_host(url: str) -> str:
        """
        Returns the host component of a URL: the lower-cased hostname plus
        ':port' when the URL names a port. Credentials are dropped.

        URLs without a host (relative paths, empty strings, 'about:blank')
        return an empty string, so two host-less URLs compare equal.
        """
        if isinstance(url, bytes):
            url = url.decode('utf-8')
        if not url:
            return ""

        try:
            parsed = urlparse(url)
        except ValueError:
            logger.debug(f"Could not parse invalid URL: {url}")
            return ""

        hostname = parsed.hostname or ""
        if not hostname:
            return ""
        if ":" in hostname:
            hostname = f"[{hostname}]"

        # Port text is taken as written (':080' stays ':080'), never re-rendered.
        hostinfo = parsed.netloc.rpartition('@')[2]
        if hostinfo.startswith('['):
            port = hostinfo.partition(']')[2]
            port = port[1:] if port.startswith(':') else ''
        else:
            port = hostinfo.partition(':')[2]

        return f"{hostname}:{port}" if port else hostname

    @staticmethod
    def is_same_host(url: str, host: str) -> bool:
        """
        Checks if a URL's host is exactly `host`.
        Subdomains do not match: 'cdn.example.com' is not 'example.com'.
        """
        return UrlUtils.get_host(url) == host
