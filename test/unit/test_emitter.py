#!/usr/bin/env python3
"""
Unit tests for the Terraform and audit report emitter
"""

import unittest
import sys
import os
import tempfile
import shutil
from pathlib import Path
from unittest.mock import patch

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../src'))

from kafka_acl_migrator.emitter import (
    AssetEmitter,
    EmissionError,
    STAGE_REPORT,
    STAGE_TERRAFORM,
    confluent_enum,
    hcl_identifier,
    hcl_string,
)
from kafka_acl_migrator.translation import AclRecord


def record(resource_type="Topic", name="orders", pattern="LITERAL", principal="kcp_iam_role",
           host="*", operation="Read", permission="ALLOW"):
    return AclRecord(resource_type, name, pattern, principal, host, operation, permission)


class TestHclHelpers(unittest.TestCase):
    """Test HCL quoting and naming helpers"""

    def test_hcl_string_escapes(self):
        test_cases = [
            ('orders', '"orders"'),
            ('say "hi"', '"say \\"hi\\""'),
            ('back\\slash', '"back\\\\slash"'),
            ('${var.x}', '"$${var.x}"'),
            ('%{ if x }', '"%%{ if x }"'),
        ]

        for value, expected in test_cases:
            self.assertEqual(hcl_string(value), expected, f"Failed for value: {value}")

    def test_hcl_identifier(self):
        test_cases = [
            ('kcp_iam_role', 'kcp_iam_role'),
            ('Orders-Topic.v1', 'orders_topic_v1'),
            ('123-app', 'acl_123_app'),
            ('a___b', 'a_b'),
            ('***', 'acl'),
        ]

        for value, expected in test_cases:
            self.assertEqual(hcl_identifier(value), expected, f"Failed for value: {value}")

    def test_confluent_enum(self):
        test_cases = [
            ('Topic', 'TOPIC'),
            ('TransactionalId', 'TRANSACTIONAL_ID'),
            ('DescribeConfigs', 'DESCRIBE_CONFIGS'),
            ('IdempotentWrite', 'IDEMPOTENT_WRITE'),
            ('LITERAL', 'LITERAL'),
            ('ALLOW', 'ALLOW'),
            ('TRANSACTIONAL_ID', 'TRANSACTIONAL_ID'),
        ]

        for value, expected in test_cases:
            self.assertEqual(confluent_enum(value), expected, f"Failed for value: {value}")


class TestAssetEmitter(unittest.TestCase):
    """Test the AssetEmitter class"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.output_dir = Path(self.temp_dir) / "kcp_iam_role_iam_acls"
        self.acls = {
            "kcp_iam_role": [
                record(name="payments-", pattern="PREFIXED", operation="Write"),
                record(),
                record(resource_type="Group", name="orders-consumer"),
            ],
            "analytics_role": [
                record(principal="analytics_role", operation="Describe"),
            ],
        }

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_file_set(self):
        result = AssetEmitter().emit(self.acls, str(self.output_dir))

        names = sorted(Path(f).name for f in result.files)
        self.assertEqual(names, [
            "analytics_role-acls.tf",
            "kcp_iam_role-acls.tf",
            "migrated-acls-report.md",
            "providers.tf",
            "variables.tf",
        ])
        self.assertEqual(result.acls_count, 4)
        self.assertEqual(result.principals, ["kcp_iam_role", "analytics_role"])
        self.assertTrue(result.report_file.endswith("migrated-acls-report.md"))

    def test_acl_resources(self):
        AssetEmitter().emit(self.acls, str(self.output_dir))

        content = (self.output_dir / "kcp_iam_role-acls.tf").read_text()

        self.assertEqual(content.count('resource "confluent_kafka_acl"'), 3)
        self.assertIn('resource "confluent_kafka_acl" "kcp_iam_role_topic_orders_read_allow_literal"', content)
        self.assertIn('resource_type = "TOPIC"', content)
        self.assertIn('resource_name = "payments-"', content)
        self.assertIn('pattern_type  = "PREFIXED"', content)
        self.assertIn('principal     = "User:${var.kcp_iam_role_service_account_id}"', content)
        self.assertIn('host          = "*"', content)
        self.assertIn('operation     = "WRITE"', content)
        self.assertIn('permission    = "ALLOW"', content)
        self.assertIn('id = var.target_cluster_id', content)
        self.assertIn('rest_endpoint = var.target_cluster_rest_endpoint', content)
        self.assertIn('key    = var.kafka_api_key', content)

    def test_resource_names_unique(self):
        acls = {"kcp_iam_role": [record(name="orders.v1"), record(name="orders-v1")]}

        AssetEmitter().emit(acls, str(self.output_dir))
        content = (self.output_dir / "kcp_iam_role-acls.tf").read_text()

        self.assertIn('"kcp_iam_role_topic_orders_v1_read_allow_literal"', content)
        self.assertIn('"kcp_iam_role_topic_orders_v1_read_allow_literal_2"', content)

    def test_colliding_principal_ids(self):
        acls = {
            "app+x": [record(principal="app+x")],
            "app=x": [record(principal="app=x", name="payments", operation="Write")],
        }

        result = AssetEmitter().emit(acls, str(self.output_dir))

        acl_files = sorted(Path(f).name for f in result.files if f.endswith("-acls.tf"))
        self.assertEqual(acl_files, ["app_x-acls.tf", "app_x_2-acls.tf"])

        first = (self.output_dir / "app_x-acls.tf").read_text()
        second = (self.output_dir / "app_x_2-acls.tf").read_text()
        self.assertIn('resource_name = "orders"', first)
        self.assertIn('${var.app_x_service_account_id}', first)
        self.assertIn('resource_name = "payments"', second)
        self.assertIn('${var.app_x_2_service_account_id}', second)

        variables = (self.output_dir / "variables.tf").read_text()
        self.assertIn('variable "app_x_service_account_id"', variables)
        self.assertIn('variable "app_x_2_service_account_id"', variables)

    def test_providers_and_variables(self):
        AssetEmitter(provider_version="~> 2.10").emit(self.acls, str(self.output_dir))

        providers = (self.output_dir / "providers.tf").read_text()
        self.assertIn('source  = "confluentinc/confluent"', providers)
        self.assertIn('version = "~> 2.10"', providers)
        self.assertIn('cloud_api_key    = var.confluent_cloud_api_key', providers)

        variables = (self.output_dir / "variables.tf").read_text()
        for name in ("confluent_cloud_api_key", "confluent_cloud_api_secret", "target_cluster_id",
                     "target_cluster_rest_endpoint", "kafka_api_key", "kafka_api_secret",
                     "kcp_iam_role_service_account_id", "analytics_role_service_account_id"):
            self.assertIn(f'variable "{name}"', variables)
        self.assertIn('sensitive   = true', variables)

    def test_tfvars_only_with_target(self):
        AssetEmitter().emit(self.acls, str(self.output_dir))
        self.assertFalse((self.output_dir / "inputs.auto.tfvars").exists())

        AssetEmitter(cluster_id="lkc-abc123",
                     rest_endpoint="https://pkc-abc123.us-east-1.aws.confluent.cloud:443").emit(
            self.acls, str(self.output_dir))

        tfvars = (self.output_dir / "inputs.auto.tfvars").read_text()
        self.assertIn('target_cluster_id = "lkc-abc123"', tfvars)
        self.assertIn('target_cluster_rest_endpoint = "https://pkc-abc123.us-east-1.aws.confluent.cloud:443"',
                      tfvars)

    def test_skip_audit_report(self):
        result = AssetEmitter(skip_audit_report=True).emit(self.acls, str(self.output_dir))

        self.assertIsNone(result.report_file)
        self.assertFalse((self.output_dir / "migrated-acls-report.md").exists())

    def test_iam_audit_report(self):
        AssetEmitter().emit(self.acls, str(self.output_dir))
        report = (self.output_dir / "migrated-acls-report.md").read_text()

        self.assertIn("- Total ACL entries: 4", report)
        self.assertIn("- Principals: 2", report)
        self.assertIn("IAM Action(s)", report)
        self.assertIn("kafka-cluster:WriteData", report)

        # Principal sections are sorted
        self.assertLess(report.index("## Principal: analytics_role"), report.index("## Principal: kcp_iam_role"))

        # Rows sorted by resource type, name and operation
        section = report[report.index("## Principal: kcp_iam_role"):]
        self.assertLess(section.index("kafka-cluster:AlterGroup"), section.index("kafka-cluster:ReadData"))
        self.assertLess(section.index("kafka-cluster:ReadData"), section.index("kafka-cluster:WriteData"))

    def test_kafka_audit_report(self):
        AssetEmitter().emit(self.acls, str(self.output_dir), source="kafka")
        report = (self.output_dir / "migrated-acls-report.md").read_text()

        self.assertNotIn("IAM Action", report)
        self.assertIn("Resource Type", report)
        self.assertIn("Kafka ACLs observed on the source cluster", report)

    def test_unknown_source(self):
        with self.assertRaises(ValueError):
            AssetEmitter().emit(self.acls, str(self.output_dir), source="ldap")

    def test_terraform_write_failure(self):
        blocker = Path(self.temp_dir) / "not-a-directory"
        blocker.write_text("")

        with self.assertRaises(EmissionError) as context:
            AssetEmitter().emit(self.acls, str(blocker))

        self.assertEqual(context.exception.stage, STAGE_TERRAFORM)

    def test_report_write_failure(self):
        emitter = AssetEmitter()

        with patch.object(emitter, 'write_audit_report', side_effect=PermissionError("read-only")):
            with self.assertRaises(EmissionError) as context:
                emitter.emit(self.acls, str(self.output_dir))

        self.assertEqual(context.exception.stage, STAGE_REPORT)
        self.assertTrue((self.output_dir / "providers.tf").exists())


if __name__ == '__main__':
    unittest.main()
