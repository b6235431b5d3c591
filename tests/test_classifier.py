"""Tests for tag classification."""

import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from opsgenie_reports.classifier import TagVocabulary, classify

VOCABULARY = TagVocabulary(
    business_units=("deliveryplus", "govpress"),
    time_tags=("OOH", "inhours", "wakinghours", "sleepinghours"),
)


def test_classify_business_unit_first_match_follows_configuration_order():
    """Verify the business unit is chosen by configuration order, not tag order."""
    result = classify({"govpress", "deliveryplus"}, VOCABULARY)

    assert result.business_unit == "deliveryplus"


def test_classify_keeps_every_matching_time_tag_in_vocabulary_order():
    """Verify all matching time tags are preserved rather than only the first."""
    result = classify({"sleepinghours", "OOH", "govpress"}, VOCABULARY)

    assert result.time_tags == ("OOH", "sleepinghours")


def test_classify_extracts_client_labels_from_prefixed_tags():
    """Verify client labels are the suffix after the client_ prefix and other tags are ignored."""
    result = classify({"client_acme", "client_globex", "acme", "Client_initech"}, VOCABULARY)

    assert result.clients == ("acme", "globex")


def test_classify_without_matches_returns_empty_result():
    """Verify absent matches yield an empty result rather than an error."""
    result = classify(set(), VOCABULARY)

    assert result.business_unit is None
    assert result.time_tags == ()
    assert result.clients == ()


def test_classify_is_case_sensitive():
    """Verify tag matching does not fold case."""
    result = classify({"SleepingHours", "GovPress"}, VOCABULARY)

    assert result.business_unit is None
    assert result.time_tags == ()


def test_classify_is_idempotent():
    """Verify repeated classification of the same tags yields identical results."""
    tags = frozenset({"govpress", "inhours", "client_acme"})

    assert classify(tags, VOCABULARY) == classify(tags, VOCABULARY)
