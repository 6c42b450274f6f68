"""FanPulse: fandom signal ingestion, discovery and campaign scoring."""
