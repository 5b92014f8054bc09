# core/ip_utils.py
import ipaddress
from typing import Dict, Optional

from core.constants import CDN_RANGES, DEFAULT_PROVIDER, PROVIDER_PREFIXES


class IPUtils:
    def __init__(self, cdn_ranges: Dict[str, list[str]] = None,
                 provider_prefixes: Dict[str, list[str]] = None):
        self.cdn_ranges = cdn_ranges if cdn_ranges is not None else CDN_RANGES
        self.provider_prefixes = provider_prefixes if provider_prefixes is not None else PROVIDER_PREFIXES
        self._networks = {
            cdn: [ipaddress.ip_network(range_str, strict=False) for range_str in ranges]
            for cdn, ranges in self.cdn_ranges.items()
        }

    @staticmethod
    def normalize(candidate) -> Optional[str]:
        """Return the dotted-quad form of a candidate, or None if it is not one"""
        if not isinstance(candidate, str):
            return None
        candidate = candidate.strip()
        if candidate.count('.') != 3:
            return None
        try:
            return str(ipaddress.IPv4Address(candidate))
        except ValueError:
            return None

    def is_well_formed(self, candidate) -> bool:
        return self.normalize(candidate) is not None

    def provider_for(self, ip: str) -> str:
        """Classify an address by prefix; anything unmatched is the default provider"""
        for provider, prefixes in self.provider_prefixes.items():
            if ip.startswith(tuple(prefixes)):
                return provider
        return DEFAULT_PROVIDER

    def cdn_for(self, ip: str) -> Optional[str]:
        """Name of the CDN whose published ranges contain the address"""
        try:
            ip_obj = ipaddress.ip_address(ip)
        except ValueError:
            return None

        for cdn, networks in self._networks.items():
            for network in networks:
                if ip_obj in network:
                    return cdn
        return None

    def is_cdn_ip(self, ip: str) -> bool:
        """Check if IP belongs to known CDN ranges"""
        return self.cdn_for(ip) is not None
