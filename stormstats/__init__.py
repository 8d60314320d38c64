"""
stormstats package
==================

This package contains the data-wrangling pipeline behind the U.S. severe
weather dashboard (heat map, radar charts, time-series line charts).

- The CLI entry point is in `stormstats/cli.py`.
- The pipeline stages (filter, group, top-N, year fill) are in `stormstats/wrangle.py`.
- Chart-ready output shapes are built in `stormstats/formatting.py`.
- Dataset loading is in `stormstats/loader.py`.
"""

__version__ = '0.3.0'
