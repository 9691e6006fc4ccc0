#!/usr/bin/env python3
"""
Unit tests for the discovery state file reader
"""

import unittest
import sys
import os
import json
import tempfile
import shutil
from pathlib import Path

# Add src and test directories to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../src'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from kafka_acl_migrator.principals import DiscoveredClient
from kafka_acl_migrator.state import (
    StateFileError,
    cluster_acls,
    cluster_name,
    discovered_clients,
    get_cluster_by_arn,
    load_state,
)
from fixtures.sample_policies import CLUSTER_ARN, EMPTY_CLUSTER_ARN, KAFKA_ACLS, SAMPLE_STATE


class TestStateFile(unittest.TestCase):
    """Test loading and querying the state file"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.state_file = Path(self.temp_dir) / "kcp-state.json"
        with open(self.state_file, 'w') as f:
            json.dump(SAMPLE_STATE, f)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_load_state(self):
        state = load_state(str(self.state_file))
        self.assertEqual(len(state['regions']), 1)

    def test_missing_file(self):
        with self.assertRaises(StateFileError):
            load_state(Path(self.temp_dir) / "missing.json")

    def test_invalid_json(self):
        broken = Path(self.temp_dir) / "broken.json"
        broken.write_text("{not json")

        with self.assertRaises(StateFileError):
            load_state(broken)

    def test_non_object_json(self):
        listing = Path(self.temp_dir) / "list.json"
        listing.write_text("[]")

        with self.assertRaises(StateFileError):
            load_state(listing)

    def test_get_cluster_by_arn(self):
        cluster = get_cluster_by_arn(load_state(self.state_file), CLUSTER_ARN)
        self.assertEqual(cluster['name'], "orders-cluster")

    def test_unknown_cluster(self):
        with self.assertRaises(StateFileError) as context:
            get_cluster_by_arn(SAMPLE_STATE, "arn:aws:kafka:us-east-1:1:cluster/missing/x")
        self.assertIn("not found", str(context.exception))

    def test_discovered_clients(self):
        clients = discovered_clients(get_cluster_by_arn(SAMPLE_STATE, CLUSTER_ARN))

        self.assertEqual(len(clients), 4)
        self.assertIsInstance(clients[0], DiscoveredClient)
        self.assertEqual(clients[1].auth, "SASL_SCRAM")

    def test_cluster_acls(self):
        self.assertEqual(cluster_acls(get_cluster_by_arn(SAMPLE_STATE, CLUSTER_ARN)), KAFKA_ACLS)
        self.assertEqual(cluster_acls(get_cluster_by_arn(SAMPLE_STATE, EMPTY_CLUSTER_ARN)), [])
        self.assertEqual(cluster_acls({'arn': CLUSTER_ARN}), [])

    def test_cluster_name(self):
        self.assertEqual(cluster_name({'arn': CLUSTER_ARN, 'name': 'orders'}), 'orders')
        self.assertEqual(cluster_name({'arn': CLUSTER_ARN}), 'orders-cluster')

        with self.assertRaises(StateFileError):
            cluster_name({'arn': 'not-an-arn'})


if __name__ == '__main__':
    unittest.main()
