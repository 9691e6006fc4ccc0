"""
Kafka ACL Migrator

Converts AWS MSK IAM policies and Kafka ACLs into Confluent Cloud ACL Terraform
configuration with a markdown audit report.
"""

__version__ = "1.0.0"

from .translation import AclRecord, PolicyStatement, PolicyTranslator
from .emitter import AssetEmitter
from .orchestrator import IamAclMigrator, KafkaAclMigrator, MigrationError

__all__ = [
    "AclRecord",
    "PolicyStatement",
    "PolicyTranslator",
    "AssetEmitter",
    "IamAclMigrator",
    "KafkaAclMigrator",
    "MigrationError"
]
