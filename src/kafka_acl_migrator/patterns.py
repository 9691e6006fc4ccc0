#!/usr/bin/env python3
"""
Resource Pattern Extraction

Parses MSK resource ARNs into the Kafka resource name and pattern type an ACL
should use. Every input has a defined result; unparseable ARNs fall back to a
literal wildcard.
"""

from typing import Tuple

from .mapping import (
    RESOURCE_TYPE_CLUSTER,
    RESOURCE_TYPE_GROUP,
    RESOURCE_TYPE_TOPIC,
    RESOURCE_TYPE_TRANSACTIONAL_ID,
)

PATTERN_LITERAL = "LITERAL"
PATTERN_PREFIXED = "PREFIXED"

WILDCARD = "*"
CLUSTER_RESOURCE_NAME = "kafka-cluster"

# arn:aws:kafka:region:account:topic/cluster-name/cluster-id/topic-name
# arn:aws:kafka:region:account:group/cluster-name/cluster-id/group-name
# arn:aws:kafka:region:account:transactional-id/cluster-name/cluster-id/txn-id
ARN_SEPARATORS = {
    RESOURCE_TYPE_TOPIC: ':topic/',
    RESOURCE_TYPE_GROUP: ':group/',
    RESOURCE_TYPE_TRANSACTIONAL_ID: ':transactional-id/',
}

# cluster-name, cluster-id, leaf name
MIN_ARN_PATH_SEGMENTS = 3


def extract_pattern(resource_identifier: str, resource_kind: str) -> Tuple[str, str]:
    """
    Extract the Kafka resource name and pattern type from an MSK resource ARN

    Args:
        resource_identifier: Resource string taken from an IAM policy statement
        resource_kind: Kafka resource type the calling action applies to

    Returns:
        Tuple of (resource_name, pattern_type)
    """
    if resource_identifier == WILDCARD or ':*' in resource_identifier:
        return WILDCARD, PATTERN_LITERAL

    if resource_kind == RESOURCE_TYPE_CLUSTER:
        return CLUSTER_RESOURCE_NAME, PATTERN_LITERAL

    separator = ARN_SEPARATORS.get(resource_kind)
    if separator is None or separator not in resource_identifier:
        return WILDCARD, PATTERN_LITERAL

    remainder = resource_identifier.split(separator, 1)[1]
    segments = remainder.split('/')
    if len(segments) < MIN_ARN_PATH_SEGMENTS or not segments[-1]:
        return WILDCARD, PATTERN_LITERAL

    return determine_pattern(segments[-1])


def determine_pattern(name: str) -> Tuple[str, str]:
    """Resolve a leaf resource name into (name, pattern_type)"""
    if name == WILDCARD:
        return WILDCARD, PATTERN_LITERAL

    # "retention-*" becomes a PREFIXED "retention-"
    if name.endswith(WILDCARD) and not name.startswith(WILDCARD):
        return name[:-1], PATTERN_PREFIXED

    # Kafka ACLs have no suffix or infix matching, so anything else that
    # carries an asterisk is kept verbatim as a literal name.
    return name, PATTERN_LITERAL
