"""
SOSDash package
===============

This package contains the SOS case analytics engine (SOSDash).

- The CLI entry point is in `sosdash/cli.py`.
- The dashboard controller (records, filters, derived views) is in `sosdash/engine.py`.
- Paginated fetching is in `sosdash/client.py` and `sosdash/fetcher.py`.
- The aggregation functions are in `sosdash/aggregate.py` and `sosdash/timeline.py`.
"""

__version__ = '0.3.0'
