"""wpclone domain validation module."""
import re

from wpc.core.exc import WPCArgumentError


class WPCDomain:
    """Domain normalisation utilities"""

    SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)
    WWW_RE = re.compile(r'^www\.', re.IGNORECASE)

    @staticmethod
    def normalize(url):
        """
        Strip the protocol prefix and a leading ``www.`` from ``url``.
        Anything else is returned unchanged.
        """
        domain = (url or '').strip()
        domain = WPCDomain.SCHEME_RE.sub('', domain)
        domain = WPCDomain.WWW_RE.sub('', domain)
        return domain

    @staticmethod
    def validate(self, url):
        """
        Normalise a domain name entered by the user.
        Raises WPCArgumentError when nothing is left.
        """
        domain = WPCDomain.normalize(url)
        if not domain:
            raise WPCArgumentError("Domain name cannot be empty")
        return domain

    @staticmethod
    def slug(domain):
        """example.com -> example_com, used for database identifiers"""
        return domain.replace('.', '_')
