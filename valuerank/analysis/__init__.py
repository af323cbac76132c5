"""Analysis Package.

Shared building blocks of the strategies: numeric normalization, statement
quality analysis, the overall score aggregator, the exclusion filter,
technical re-prioritization and share-class deduplication.
"""

import logging

logger = logging.getLogger(__name__)
