"""Raw scrape dataset -> canonical content, snapshots and influencers."""
