"""Query sequences and candidate description lines from homology-search hits.

Candidates arrive pre-tokenized and blacklist-filtered; domain similarity
scores are attached upstream and may be absent.
"""

from hrd_pipeline.candidates.models import (
    CANDIDATE_COLUMNS,
    DOMAIN_SIMILARITY_COLUMN,
    REFERENCE_COLUMNS,
    Candidate,
    Query,
    patternize,
)
from hrd_pipeline.candidates.load import (
    attach_references,
    load_queries,
    load_references,
)

__all__ = [
    "CANDIDATE_COLUMNS",
    "DOMAIN_SIMILARITY_COLUMN",
    "REFERENCE_COLUMNS",
    "Candidate",
    "Query",
    "patternize",
    "attach_references",
    "load_queries",
    "load_references",
]
