"""Crawling subsystem for archive work pages.

Structure:
- base.py: spider contract
- errors.py: fetch/extraction/serialization error kinds
- spiders/: page-specific selector projections (work_spider.py)
- runner.py: tiny CLI entrypoint for manual runs and serving

Fetching goes through httpx (see app.services.archive_client) and parsing
through selectolax.
"""
