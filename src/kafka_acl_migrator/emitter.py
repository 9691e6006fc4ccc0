#!/usr/bin/env python3
"""
Terraform and Audit Report Emitter

This module writes the Confluent Cloud Terraform configuration for a set of
migrated ACLs, one ``confluent_kafka_acl`` file per principal plus the shared
provider and variable files, and a markdown audit report listing every ACL.
"""

import re
import logging
from typing import Dict, List, Optional, Set
from dataclasses import dataclass, field
from pathlib import Path
from jinja2 import Environment
from tabulate import tabulate

from .mapping import resolve_iam_actions
from .translation import AclRecord

logger = logging.getLogger(__name__)

SOURCE_IAM = "iam"
SOURCE_KAFKA = "kafka"

PROVIDERS_FILE = "providers.tf"
VARIABLES_FILE = "variables.tf"
TFVARS_FILE = "inputs.auto.tfvars"
REPORT_FILE = "migrated-acls-report.md"

DEFAULT_PROVIDER_VERSION = "~> 2.5"

STAGE_TERRAFORM = "terraform"
STAGE_REPORT = "report"


class EmissionError(Exception):
    """Raised when an output file cannot be written"""

    def __init__(self, message: str, stage: str = STAGE_TERRAFORM):
        super().__init__(message)
        self.stage = stage


@dataclass
class EmissionResult:
    """Files written by a single emission"""
    output_directory: str
    files: List[str] = field(default_factory=list)
    principals: List[str] = field(default_factory=list)
    acls_count: int = 0
    report_file: Optional[str] = None


def hcl_string(value) -> str:
    """Quote a value as an HCL string literal, escaping template sequences"""
    escaped = str(value).replace('\\', '\\\\').replace('"', '\\"')
    escaped = escaped.replace('${', '$${').replace('%{', '%%{')
    escaped = escaped.replace('\n', '\\n')
    return f'"{escaped}"'


def hcl_identifier(value: str) -> str:
    """Reduce a string to a valid Terraform identifier"""
    identifier = re.sub(r'[^a-z0-9_]+', '_', value.lower())
    identifier = re.sub(r'_+', '_', identifier).strip('_')
    if not identifier:
        return 'acl'
    if identifier[0].isdigit():
        identifier = f"acl_{identifier}"
    return identifier


def claim_identifier(base: str, used: Set[str]) -> str:
    """Reserve ``base`` in ``used``, appending ``_2``, ``_3``... when it is taken"""
    name = base
    suffix = 2
    while name in used:
        name = f"{base}_{suffix}"
        suffix += 1

    used.add(name)
    return name


def confluent_enum(value: str) -> str:
    """
    Convert a Kafka ACL value to the provider's enum spelling

    ``TransactionalId`` becomes ``TRANSACTIONAL_ID`` and ``DescribeConfigs``
    becomes ``DESCRIBE_CONFIGS``. Values that are already upper case are kept.
    """
    return re.sub(r'(?<=[a-z0-9])(?=[A-Z])', '_', value).upper()


class AssetEmitter:
    """
    Writes Terraform and audit report assets for migrated ACLs

    Principal groups are written in the order they are given. Resource names
    are unique across the whole output directory.
    """

    ACLS_TF_TEMPLATE = """# Confluent Cloud ACLs for principal {{ principal }}
# Generated by kafka-acl-migrator from {{ source_label }}
{% for acl in acls %}

resource "confluent_kafka_acl" "{{ acl.name }}" {
  kafka_cluster {
    id = var.target_cluster_id
  }

  resource_type = {{ acl.record.resource_type | confluent_enum | hcl_string }}
  resource_name = {{ acl.record.resource_name | hcl_string }}
  pattern_type  = {{ acl.record.resource_pattern_type | confluent_enum | hcl_string }}
  principal     = "User:${var.{{ service_account_variable }}}"
  host          = {{ acl.record.host | hcl_string }}
  operation     = {{ acl.record.operation | confluent_enum | hcl_string }}
  permission    = {{ acl.record.permission_type | confluent_enum | hcl_string }}
  rest_endpoint = var.target_cluster_rest_endpoint

  credentials {
    key    = var.kafka_api_key
    secret = var.kafka_api_secret
  }
}
{% endfor %}
"""

    PROVIDERS_TF_TEMPLATE = """# Provider configuration
# Generated by kafka-acl-migrator

terraform {
  required_providers {
    confluent = {
      source  = "confluentinc/confluent"
      version = {{ provider_version | hcl_string }}
    }
  }
}

provider "confluent" {
  cloud_api_key    = var.confluent_cloud_api_key
  cloud_api_secret = var.confluent_cloud_api_secret
}
"""

    VARIABLES_TF_TEMPLATE = """# Variables for migrated ACLs
# Generated by kafka-acl-migrator
{% for variable in variables %}

variable "{{ variable.name }}" {
  description = {{ variable.description | hcl_string }}
  type        = string
{% if variable.sensitive %}
  sensitive   = true
{% endif %}
}
{% endfor %}
"""

    TFVARS_TEMPLATE = """# Generated by kafka-acl-migrator
{% for name, value in values.items() %}
{{ name }} = {{ value | hcl_string }}
{% endfor %}
"""

    REPORT_TEMPLATE = """# Migrated ACLs Report

This report lists the Confluent Cloud ACLs generated from {{ source_label }}.
Review each entry before applying the Terraform configuration.

## Summary

- Total ACL entries: {{ acls_count }}
- Principals: {{ principal_count }}
{% for section in sections %}

## Principal: {{ section.principal }}

ACL entries: {{ section.count }}

{{ section.table }}
{% endfor %}
"""

    SHARED_VARIABLES = [
        {'name': 'confluent_cloud_api_key', 'description': 'Confluent Cloud API key', 'sensitive': True},
        {'name': 'confluent_cloud_api_secret', 'description': 'Confluent Cloud API secret', 'sensitive': True},
        {'name': 'target_cluster_id', 'description': 'ID of the target Confluent Cloud Kafka cluster',
         'sensitive': False},
        {'name': 'target_cluster_rest_endpoint', 'description': 'REST endpoint of the target Kafka cluster',
         'sensitive': False},
        {'name': 'kafka_api_key', 'description': 'Kafka API key with permission to manage ACLs', 'sensitive': True},
        {'name': 'kafka_api_secret', 'description': 'Kafka API secret', 'sensitive': True},
    ]

    SOURCE_LABELS = {
        SOURCE_IAM: "AWS IAM policies",
        SOURCE_KAFKA: "Kafka ACLs observed on the source cluster",
    }

    def __init__(self,
                 cluster_id: Optional[str] = None,
                 rest_endpoint: Optional[str] = None,
                 provider_version: str = DEFAULT_PROVIDER_VERSION,
                 skip_audit_report: bool = False):
        """
        Initialize the emitter

        Args:
            cluster_id: Target cluster ID written to inputs.auto.tfvars
            rest_endpoint: Target cluster REST endpoint written to inputs.auto.tfvars
            provider_version: Version constraint for the confluent provider
            skip_audit_report: Do not write the markdown audit report
        """
        self.cluster_id = cluster_id
        self.rest_endpoint = rest_endpoint
        self.provider_version = provider_version
        self.skip_audit_report = skip_audit_report

        self.env = Environment(trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)
        self.env.filters['hcl_string'] = hcl_string
        self.env.filters['confluent_enum'] = confluent_enum

    def emit(self,
             acls_by_principal: Dict[str, List[AclRecord]],
             destination: str,
             source: str = SOURCE_IAM) -> EmissionResult:
        """
        Write all assets for the given ACLs

        Args:
            acls_by_principal: ACL records keyed by clean principal name
            destination: Output directory, created if missing
            source: ``iam`` or ``kafka``, selects the report layout

        Returns:
            EmissionResult listing the written files

        Raises:
            EmissionError: On the first file that cannot be written
        """
        if source not in self.SOURCE_LABELS:
            raise ValueError(f"unknown ACL source: {source}")

        output_path = Path(destination)
        result = EmissionResult(
            output_directory=str(output_path),
            principals=list(acls_by_principal.keys()),
            acls_count=sum(len(acls) for acls in acls_by_principal.values())
        )

        logger.info(f"Writing Terraform files for {len(result.principals)} principals to {output_path}")

        try:
            output_path.mkdir(parents=True, exist_ok=True)
            result.files.extend(self.write_terraform(acls_by_principal, output_path, source))
        except OSError as e:
            raise EmissionError(f"{e}", STAGE_TERRAFORM) from e

        if self.skip_audit_report:
            logger.info("Skipping audit report")
        else:
            try:
                report_file = self.write_audit_report(acls_by_principal, output_path, source)
            except OSError as e:
                raise EmissionError(f"{e}", STAGE_REPORT) from e
            result.files.append(report_file)
            result.report_file = report_file

        logger.info(f"Wrote {len(result.files)} files to {output_path}")
        return result

    def write_terraform(self,
                        acls_by_principal: Dict[str, List[AclRecord]],
                        output_path: Path,
                        source: str = SOURCE_IAM) -> List[str]:
        """Write the per-principal ACL files and the shared Terraform files"""
        files = []
        used_names: Set[str] = set()
        used_principal_ids: Set[str] = set()
        principal_variables = []

        for principal, acls in acls_by_principal.items():
            # Distinct principals such as "app+x" and "app=x" share a sanitized form
            principal_id = claim_identifier(hcl_identifier(principal), used_principal_ids)
            if principal_id != hcl_identifier(principal):
                logger.warning(f"Principal {principal} written as {principal_id} to avoid a name collision")
            variable_name = f"{principal_id}_service_account_id"

            template = self.env.from_string(self.ACLS_TF_TEMPLATE)
            content = template.render(
                principal=principal,
                source_label=self.SOURCE_LABELS[source],
                service_account_variable=variable_name,
                acls=[{'name': self._unique_name(principal_id, record, used_names), 'record': record}
                      for record in acls]
            )
            files.append(self._write(output_path / f"{principal_id}-acls.tf", content))

            principal_variables.append({
                'name': variable_name,
                'description': f"Confluent Cloud service account ID for principal {principal}",
                'sensitive': False
            })

            logger.debug(f"Wrote {len(acls)} ACLs for principal {principal}")

        template = self.env.from_string(self.PROVIDERS_TF_TEMPLATE)
        files.append(self._write(output_path / PROVIDERS_FILE,
                                 template.render(provider_version=self.provider_version)))

        template = self.env.from_string(self.VARIABLES_TF_TEMPLATE)
        files.append(self._write(output_path / VARIABLES_FILE,
                                 template.render(variables=self.SHARED_VARIABLES + principal_variables)))

        tfvars = {}
        if self.cluster_id:
            tfvars['target_cluster_id'] = self.cluster_id
        if self.rest_endpoint:
            tfvars['target_cluster_rest_endpoint'] = self.rest_endpoint
        if tfvars:
            template = self.env.from_string(self.TFVARS_TEMPLATE)
            files.append(self._write(output_path / TFVARS_FILE, template.render(values=tfvars)))

        return files

    def write_audit_report(self,
                           acls_by_principal: Dict[str, List[AclRecord]],
                           output_path: Path,
                           source: str = SOURCE_IAM) -> str:
        """Write the markdown audit report and return its path"""
        template = self.env.from_string(self.REPORT_TEMPLATE)
        content = template.render(
            source_label=self.SOURCE_LABELS[source],
            acls_count=sum(len(acls) for acls in acls_by_principal.values()),
            principal_count=len(acls_by_principal),
            sections=[
                {
                    'principal': principal,
                    'count': len(acls_by_principal[principal]),
                    'table': self.render_report_table(acls_by_principal[principal], source)
                }
                for principal in sorted(acls_by_principal)
            ]
        )

        report_file = self._write(output_path / REPORT_FILE, content)
        logger.info(f"Audit report written to {report_file}")
        return report_file

    def render_report_table(self, acls: List[AclRecord], source: str = SOURCE_IAM) -> str:
        """Render one principal's ACLs as a markdown table"""
        headers = ["Resource Type", "Resource Name", "Pattern Type", "Operation", "Permission Type"]
        if source == SOURCE_IAM:
            headers = ["IAM Action(s)"] + headers

        rows = []
        for record in sorted(acls, key=lambda r: (r.resource_type, r.resource_name, r.operation)):
            row = [
                record.resource_type,
                record.resource_name,
                record.resource_pattern_type,
                record.operation,
                record.permission_type
            ]
            if source == SOURCE_IAM:
                row = [", ".join(resolve_iam_actions(record.resource_type, record.operation))] + row
            rows.append(row)

        return tabulate(rows, headers=headers, tablefmt="github")

    def _unique_name(self, principal_id: str, record: AclRecord, used_names: Set[str]) -> str:
        base = hcl_identifier("_".join([
            principal_id,
            record.resource_type,
            record.resource_name,
            record.operation,
            record.permission_type,
            record.resource_pattern_type
        ]))
        return claim_identifier(base, used_names)

    def _write(self, file_path: Path, content: str) -> str:
        with open(file_path, 'w') as f:
            f.write(content)
        return str(file_path)
