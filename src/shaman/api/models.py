"""Pydantic models shared by the API server and client."""

import re
from typing import List, Optional

import dns.exception
import dns.name
import dns.rdatatype
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TTL = 60

_RE_DOMAIN = re.compile(r"^[a-z0-9_*\-]+(\.[a-z0-9_*\-]+)*$")


def normalize_domain(value: str) -> str:
    """
    Return the canonical form of a domain name.

    Lowercases, strips surrounding whitespace and the trailing dot, and
    rejects names that are empty or not valid DNS names.
    """
    domain = value.strip().lower().rstrip(".")

    if not domain:
        raise ValueError("domain must not be empty")

    if not _RE_DOMAIN.match(domain):
        raise ValueError(f"invalid domain '{value}'")

    try:
        dns.name.from_text(domain)
    except dns.exception.DNSException as e:
        raise ValueError(f"invalid domain '{value}': {e}") from e

    return domain


class Answer(BaseModel):
    """A single DNS answer record."""

    model_config = ConfigDict(frozen=True)

    type: str
    value: str = Field(min_length=1)
    ttl: int = Field(default=DEFAULT_TTL, ge=0)
    priority: Optional[int] = Field(default=None, ge=0)
    weight: Optional[int] = Field(default=None, ge=0)
    port: Optional[int] = Field(default=None, ge=0)

    @field_validator("type")
    @classmethod
    def _check_type(cls, value: str) -> str:
        rdtype = value.strip().upper()

        try:
            dns.rdatatype.from_text(rdtype)
        except dns.rdatatype.UnknownRdatatype as e:
            raise ValueError(f"unknown record type '{value}'") from e

        return rdtype


class Resource(BaseModel):
    """A domain together with its full answer set."""

    domain: str
    answers: List[Answer] = Field(default_factory=list)

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, value: str) -> str:
        return normalize_domain(value)

    @field_validator("answers")
    @classmethod
    def _dedupe_answers(cls, value: List[Answer]) -> List[Answer]:
        # answers form a set; keep first-seen order
        return list(dict.fromkeys(value))

    def summary(self) -> dict:
        """Return the abbreviated form used by list without full detail."""
        return {"domain": self.domain}


class ApiError(BaseModel):
    """Body of every non-2xx response."""

    error: str


class FullOption(BaseModel):
    """Query modifier for listing records."""

    full: bool = False
