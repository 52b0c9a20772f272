"""Data models for query sequences and their candidate description lines."""

import re
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Columns expected in a candidates TSV file
CANDIDATE_COLUMNS = [
    "query_id",
    "sequence_length",
    "blast_database",
    "accession",
    "description",
    "bit_score",
    "query_start",
    "query_end",
    "tokens",
]

# Optional column; NULL cells mean no domain evidence
DOMAIN_SIMILARITY_COLUMN = "domain_similarity_score"

# Columns expected in a references TSV file
REFERENCE_COLUMNS = ["query_id", "reference_description", "reference_tokens"]

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def patternize(description: str) -> str:
    """
    Canonicalize a description line for repetition counting.

    Lower-cases the text and removes every run of non-alphanumeric
    characters, so "Protein kinase, putative" and "protein-kinase putative"
    share one pattern.
    """
    return _NON_ALPHANUMERIC.sub("", description.lower())


class Candidate(BaseModel):
    """One candidate description line produced by a single homology-search hit.

    Attributes:
        blast_database: Name of the source database the hit was found in
        accession: Accession of the hit's subject sequence
        description: Description line text of the hit
        bit_score: Alignment bit score (>= 0)
        query_start: First aligned query position (1-based, inclusive)
        query_end: Last aligned query position (1-based, inclusive)
        tokens: Normalized words surviving blacklist filtering, de-duplicated
            in first-seen order. May be empty.
        domain_similarity_score: Agreement of query and hit domain annotations.
            None if no domain evidence exists.

    None is preserved for domain_similarity_score: "no domain evidence" is
    semantically different from a similarity of zero.
    """

    model_config = ConfigDict(frozen=True)

    blast_database: str
    accession: str
    description: str = ""
    bit_score: float = Field(..., ge=0.0)
    query_start: int
    query_end: int
    tokens: tuple[str, ...] = ()
    domain_similarity_score: float | None = Field(default=None, ge=0.0)

    @field_validator("tokens")
    @classmethod
    def deduplicate_tokens(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop repeated tokens, keeping first-seen order."""
        return tuple(dict.fromkeys(v))

    @model_validator(mode="after")
    def check_alignment_range(self) -> "Candidate":
        """Alignment positions are 1-based and inclusive: 1 <= query_start <= query_end."""
        if self.query_start < 1:
            raise ValueError(f"query_start must be >= 1, got {self.query_start}")
        if self.query_end < self.query_start:
            raise ValueError(
                f"query_end ({self.query_end}) must not precede query_start ({self.query_start})"
            )
        return self

    @property
    def pattern(self) -> str:
        return patternize(self.description)

    def has_domain_evidence(self) -> bool:
        """True if the candidate carries a domain similarity score greater than zero."""
        return (
            self.domain_similarity_score is not None
            and self.domain_similarity_score > 0.0
        )


class Query(BaseModel):
    """A query sequence and its candidate description lines.

    Attributes:
        query_id: Identifier of the query sequence
        sequence_length: Length of the query sequence in residues
        candidates: Candidate lists keyed by source database, in input order
        reference_description: Ground-truth description text, if known
        reference_tokens: Tokens of the ground-truth description, if known
    """

    model_config = ConfigDict(frozen=True)

    query_id: str
    sequence_length: int
    candidates: dict[str, list[Candidate]] = Field(default_factory=dict)
    reference_description: str | None = None
    reference_tokens: tuple[str, ...] | None = None

    def iter_candidates(self) -> Iterator[Candidate]:
        """Yield all candidates, database by database, in insertion order."""
        for blast_database_candidates in self.candidates.values():
            yield from blast_database_candidates

    @property
    def candidate_count(self) -> int:
        return sum(len(c) for c in self.candidates.values())
