"""
FanPulse ingestion.

Pipeline for one dataset:
1. Fetch: page through the scraper dataset (Apify)
2. Normalize: resolve records, persist content/snapshots/influencers
3. Scan: mine the batch for untracked fandom candidates

Trends datasets skip normalization and write GoogleTrend rows instead.
Every dataset run is audited as a ScrapeRun.
"""
