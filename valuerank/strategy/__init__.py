"""Strategy Package.

Valuation strategies implementing a common interface (validate, analyze,
rank, explain), the shared ranking pipeline and the strategy factory.
"""

import logging

logger = logging.getLogger(__name__)
