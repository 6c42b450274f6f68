"""
Google Trends regional interest integration.

Provides:
- RegionalInterestClient: session -> explore -> widget protocol client
- RegionalTrendResult, RegionalInterest: result DTOs
- DelayPolicy: injectable politeness delays
"""

from fanpulse.integrations.google_trends.client import (
    DelayPolicy,
    RegionalInterest,
    RegionalInterestClient,
    RegionalTrendResult,
    RequestsTransport,
    TransportResponse,
    TrendsSession,
    parse_protocol_json,
    strip_json_prefix,
)

__all__ = [
    "DelayPolicy",
    "RegionalInterest",
    "RegionalInterestClient",
    "RegionalTrendResult",
    "RequestsTransport",
    "TransportResponse",
    "TrendsSession",
    "parse_protocol_json",
    "strip_json_prefix",
]
