"""Tests for api/models.py."""

# pylint: disable=missing-function-docstring

import pytest
from pydantic import ValidationError

from shaman.api.models import (
    DEFAULT_TTL,
    Answer,
    ApiError,
    FullOption,
    Resource,
    normalize_domain,
)


class TestNormalizeDomain:
    """Tests for normalize_domain helper."""

    def test_lowercases(self):
        assert normalize_domain("Example.COM") == "example.com"

    def test_strips_trailing_dot(self):
        assert normalize_domain("example.com.") == "example.com"

    def test_strips_whitespace(self):
        assert normalize_domain("  example.com  ") == "example.com"

    def test_allows_wildcard_and_underscore(self):
        assert normalize_domain("*._dmarc.example.com") == "*._dmarc.example.com"

    @pytest.mark.parametrize("value", ["", "   ", "."])
    def test_rejects_empty(self, value):
        with pytest.raises(ValueError, match="empty"):
            normalize_domain(value)

    @pytest.mark.parametrize("value", ["bad domain.com", "a..b", "exa$mple.com"])
    def test_rejects_invalid_characters(self, value):
        with pytest.raises(ValueError, match="invalid domain"):
            normalize_domain(value)

    def test_rejects_label_too_long(self):
        with pytest.raises(ValueError, match="invalid domain"):
            normalize_domain("a" * 64 + ".com")


class TestAnswer:
    """Tests for Answer model."""

    def test_default_ttl(self):
        answer = Answer(type="A", value="1.2.3.4")
        assert answer.ttl == DEFAULT_TTL

    def test_type_uppercased(self):
        assert Answer(type="aaaa", value="::1").type == "AAAA"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError, match="unknown record type"):
            Answer(type="BOGUS", value="x")

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValidationError):
            Answer(type="A", value="1.2.3.4", ttl=-1)

    def test_empty_value_rejected(self):
        with pytest.raises(ValidationError):
            Answer(type="A", value="")

    def test_optional_fields_default_to_none(self):
        answer = Answer(type="MX", value="mail.example.com", priority=10)
        assert answer.priority == 10
        assert answer.weight is None
        assert answer.port is None


class TestResource:
    """Tests for Resource model."""

    def test_domain_normalized(self):
        assert Resource(domain="Example.COM.").domain == "example.com"

    def test_missing_domain_rejected(self):
        with pytest.raises(ValidationError):
            Resource.model_validate({"answers": []})

    def test_empty_domain_rejected(self):
        with pytest.raises(ValidationError):
            Resource(domain="")

    def test_answers_default_empty(self):
        assert Resource(domain="example.com").answers == []

    def test_duplicate_answers_collapsed(self):
        answer = Answer(type="A", value="1.2.3.4")
        other = Answer(type="A", value="5.6.7.8")
        resource = Resource(domain="example.com", answers=[answer, other, answer])
        assert resource.answers == [answer, other]

    def test_summary_only_carries_domain(self, example_resource):
        assert example_resource.summary() == {"domain": "example.com"}


class TestSmallModels:
    """Tests for ApiError and FullOption."""

    def test_api_error(self):
        assert ApiError(error="not found").model_dump() == {"error": "not found"}

    def test_full_option_default(self):
        assert FullOption().full is False
