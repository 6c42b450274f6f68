"""
Scrape job registry.

Describes which Apify actor produces each platform's dataset and how its
input is built. Informational: the normalizer does not depend on it.
"""
