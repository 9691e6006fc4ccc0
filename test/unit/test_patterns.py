#!/usr/bin/env python3
"""
Unit tests for resource pattern extraction
"""

import unittest
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../src'))

from kafka_acl_migrator.patterns import (
    PATTERN_LITERAL,
    PATTERN_PREFIXED,
    determine_pattern,
    extract_pattern,
)

TOPIC_ARN = "arn:aws:kafka:us-east-1:111:topic/c/cid"
GROUP_ARN = "arn:aws:kafka:us-east-1:111:group/c/cid"
TXN_ARN = "arn:aws:kafka:us-east-1:111:transactional-id/c/cid"


class TestDeterminePattern(unittest.TestCase):
    """Test leaf name pattern resolution"""

    def test_pattern_rules(self):
        test_cases = [
            ("retention-*", ("retention-", PATTERN_PREFIXED)),
            ("*-suffix", ("*-suffix", PATTERN_LITERAL)),
            ("*", ("*", PATTERN_LITERAL)),
            ("exact", ("exact", PATTERN_LITERAL)),
            ("mid*dle", ("mid*dle", PATTERN_LITERAL)),
            ("*both*", ("*both*", PATTERN_LITERAL)),
        ]

        for name, expected in test_cases:
            self.assertEqual(determine_pattern(name), expected, f"Failed for name: {name}")


class TestExtractPattern(unittest.TestCase):
    """Test ARN parsing"""

    def test_literal_topic(self):
        self.assertEqual(extract_pattern(f"{TOPIC_ARN}/orders", "Topic"), ("orders", PATTERN_LITERAL))

    def test_prefixed_topic(self):
        self.assertEqual(extract_pattern(f"{TOPIC_ARN}/prefix-*", "Topic"), ("prefix-", PATTERN_PREFIXED))

    def test_group_and_transactional_id(self):
        self.assertEqual(extract_pattern(f"{GROUP_ARN}/consumers-*", "Group"), ("consumers-", PATTERN_PREFIXED))
        self.assertEqual(extract_pattern(f"{TXN_ARN}/txn-1", "TransactionalId"), ("txn-1", PATTERN_LITERAL))

    def test_full_wildcard_for_every_kind(self):
        for kind in ("Cluster", "Topic", "Group", "TransactionalId", "Unknown"):
            self.assertEqual(extract_pattern("*", kind), ("*", PATTERN_LITERAL), f"Failed for kind: {kind}")

    def test_colon_wildcard_runs_before_kind_logic(self):
        self.assertEqual(extract_pattern("arn:aws:kafka:us-east-1:111:*", "Cluster"), ("*", PATTERN_LITERAL))
        self.assertEqual(extract_pattern("arn:aws:kafka:*:111:topic/c/cid/orders", "Topic"),
                         ("*", PATTERN_LITERAL))

    def test_cluster_kind(self):
        cluster_arn = "arn:aws:kafka:us-east-1:111:cluster/c/cid"
        self.assertEqual(extract_pattern(cluster_arn, "Cluster"), ("kafka-cluster", PATTERN_LITERAL))

    def test_too_few_segments(self):
        self.assertEqual(extract_pattern("arn:aws:kafka:us-east-1:111:topic/c/orders", "Topic"),
                         ("*", PATTERN_LITERAL))

    def test_empty_leaf(self):
        self.assertEqual(extract_pattern(f"{TOPIC_ARN}/", "Topic"), ("*", PATTERN_LITERAL))

    def test_mismatched_separator(self):
        """Test a topic ARN used for a group action falls back to wildcard"""
        self.assertEqual(extract_pattern(f"{TOPIC_ARN}/orders", "Group"), ("*", PATTERN_LITERAL))

    def test_unknown_kind(self):
        self.assertEqual(extract_pattern(f"{TOPIC_ARN}/orders", "DelegationToken"), ("*", PATTERN_LITERAL))

    def test_nested_leaf_uses_last_segment(self):
        self.assertEqual(extract_pattern(f"{TOPIC_ARN}/team/orders", "Topic"), ("orders", PATTERN_LITERAL))


if __name__ == '__main__':
    unittest.main()
