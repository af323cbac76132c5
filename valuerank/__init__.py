"""Multi-strategy valuation and ranking engine.

This package evaluates listed companies with several independent valuation
methodologies, aggregates them into an overall quality score and produces
ordered, deduplicated candidate lists.
"""

import logging

logger = logging.getLogger(__name__)
