"""
DDNS Reconciler - Keep DNS A records pointed at this host's current IP.

This package runs one supervised reconciliation loop per configured domain,
comparing the host's public (or interface-assigned) IPv4 address against the
records held by a DNS provider (DNSPod, HE, Cloudflare, AliDNS, Google,
DuckDNS) and correcting drift.
"""

__version__ = "0.1.0"
__author__ = "DDNS Reconciler Contributors"
