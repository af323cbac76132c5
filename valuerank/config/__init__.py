"""Configuration Package.

Immutable pydantic models holding strategy parameters, quality-filter settings
and overall-score weights. Every value is threaded explicitly into the calls
that use it; there is no module-level mutable configuration.
"""

import logging

logger = logging.getLogger(__name__)
