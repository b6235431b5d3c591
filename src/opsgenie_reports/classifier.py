"""Tag-driven alert classification.

An alert's tags are mapped to at most one business unit, any number of
time-of-day tags and any number of client labels. Classification is a pure
function of the tags and the configured vocabulary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Tuple

from .config import DEFAULT_BUSINESS_UNIT_TAGS, DEFAULT_TIME_TAGS
from .models import ClassificationResult

CLIENT_TAG_PREFIX = "client_"


@dataclass(frozen=True)
class TagVocabulary:
    """Ordered business-unit and time-tag vocabularies."""

    business_units: Tuple[str, ...] = DEFAULT_BUSINESS_UNIT_TAGS
    time_tags: Tuple[str, ...] = DEFAULT_TIME_TAGS
    client_prefix: str = CLIENT_TAG_PREFIX


def classify(tags: AbstractSet[str], vocabulary: TagVocabulary) -> ClassificationResult:
    """Classify an alert's tag set.

    The business unit is the first entry of ``vocabulary.business_units`` present
    in ``tags``, so configuration order decides ties. Every matching time tag is
    kept, in vocabulary order. Client labels are the suffixes of tags carrying
    the client prefix. Tag comparison is case-sensitive.
    """
    business_unit = next((unit for unit in vocabulary.business_units if unit in tags), None)
    time_tags = tuple(tag for tag in vocabulary.time_tags if tag in tags)

    prefix = vocabulary.client_prefix
    clients = tuple(
        sorted(tag[len(prefix):] for tag in tags if tag.startswith(prefix) and len(tag) > len(prefix))
    )

    return ClassificationResult(business_unit=business_unit, time_tags=time_tags, clients=clients)
