"""Data Package.

Typed value objects for company snapshots and strategy outputs, plus the
dividend history providers used by the income-ceiling strategy.
"""

import logging

logger = logging.getLogger(__name__)
