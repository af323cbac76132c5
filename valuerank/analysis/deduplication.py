"""Share-class deduplication of rankings."""

import re
from typing import List

from valuerank.data.analysis_results import RankBuilderResult

_SHARE_CLASS_SUFFIX = re.compile(r"[0-9]+[A-Z]*$")


def extract_company_prefix(ticker: str) -> str:
    """Strip the share-class suffix, e.g. PETR4 -> PETR, BPAC11 -> BPAC."""
    return _SHARE_CLASS_SUFFIX.sub("", ticker.strip().upper().removesuffix(".SA"))


def remove_duplicate_companies(results: List[RankBuilderResult]) -> List[RankBuilderResult]:
    """Keep the first (highest ranked) entry per issuer, preserving order."""
    seen = set()
    unique = []
    for result in results:
        prefix = extract_company_prefix(result.ticker)
        if prefix in seen:
            continue
        seen.add(prefix)
        unique.append(result)
    return unique
