#!/usr/bin/env python3
"""
Configuration Management Module

This module handles configuration loading, validation, and management for the
Kafka ACL migrator. Settings are merged from defaults, a YAML or JSON file,
``KAFKA_ACL_*`` environment variables and CLI arguments, in that order.
"""

import os
import yaml
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import asdict, dataclass, field
from pathlib import Path
from jsonschema import validate, ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "KAFKA_ACL_"

DEFAULT_CONFIG_LOCATIONS = [
    './kafka-acl-config.yaml',
    './kafka-acl-config.yml',
    './config/kafka-acl-config.yaml',
    '~/.kafka-acl/config.yaml',
]


@dataclass
class SourceConfig:
    """Where principals and ACLs are read from"""
    role_arn: Optional[str] = None
    user_arn: Optional[str] = None
    state_file: Optional[str] = None
    cluster_arn: Optional[str] = None
    profile: Optional[str] = None
    region: Optional[str] = None


@dataclass
class TargetConfig:
    """The Confluent Cloud cluster the ACLs are created on"""
    cluster_id: Optional[str] = None
    rest_endpoint: Optional[str] = None
    provider_version: str = "~> 2.5"


@dataclass
class TranslationConfig:
    """Configuration for IAM policy translation"""
    first_resource_only: bool = False


@dataclass
class OutputConfig:
    """Configuration for output generation"""
    output_directory: Optional[str] = None
    skip_audit_report: bool = False


@dataclass
class LoggingConfig:
    """Configuration for logging"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    console: bool = True
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5


@dataclass
class ToolConfig:
    """Main configuration class for the Kafka ACL migrator"""
    source: SourceConfig = field(default_factory=SourceConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# environment variable suffix -> (section, key, parser)
ENV_VARIABLES: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    'ROLE_ARN': ('source', 'role_arn', str),
    'USER_ARN': ('source', 'user_arn', str),
    'STATE_FILE': ('source', 'state_file', str),
    'CLUSTER_ARN': ('source', 'cluster_arn', str),
    'PROFILE': ('source', 'profile', str),
    'REGION': ('source', 'region', str),
    'TARGET_CLUSTER_ID': ('target', 'cluster_id', str),
    'TARGET_REST_ENDPOINT': ('target', 'rest_endpoint', str),
    'PROVIDER_VERSION': ('target', 'provider_version', str),
    'FIRST_RESOURCE_ONLY': ('translation', 'first_resource_only', _parse_bool),
    'OUTPUT_DIR': ('output', 'output_directory', str),
    'SKIP_AUDIT_REPORT': ('output', 'skip_audit_report', _parse_bool),
    'LOG_LEVEL': ('logging', 'level', str),
    'LOG_FILE': ('logging', 'file', str),
}

# CLI argument name -> (section, key)
CLI_ARGUMENTS: Dict[str, Tuple[str, str]] = {
    'role_arn': ('source', 'role_arn'),
    'user_arn': ('source', 'user_arn'),
    'state_file': ('source', 'state_file'),
    'cluster_arn': ('source', 'cluster_arn'),
    'profile': ('source', 'profile'),
    'region': ('source', 'region'),
    'target_cluster_id': ('target', 'cluster_id'),
    'target_rest_endpoint': ('target', 'rest_endpoint'),
    'output_dir': ('output', 'output_directory'),
}

# Flags only override lower layers when they are switched on
CLI_FLAGS: Dict[str, Tuple[str, str]] = {
    'first_resource_only': ('translation', 'first_resource_only'),
    'skip_audit_report': ('output', 'skip_audit_report'),
}


class ConfigManager:
    """Configuration manager for the Kafka ACL migrator"""

    NULLABLE_STRING = {"type": ["string", "null"]}

    # JSON Schema for configuration validation
    CONFIG_SCHEMA = {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "source": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "role_arn": {"type": ["string", "null"], "pattern": "^arn:aws[a-z-]*:iam::"},
                    "user_arn": {"type": ["string", "null"], "pattern": "^arn:aws[a-z-]*:iam::"},
                    "state_file": NULLABLE_STRING,
                    "cluster_arn": NULLABLE_STRING,
                    "profile": NULLABLE_STRING,
                    "region": NULLABLE_STRING
                }
            },
            "target": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "cluster_id": NULLABLE_STRING,
                    "rest_endpoint": {"type": ["string", "null"], "pattern": "^https?://"},
                    "provider_version": {"type": "string", "minLength": 1}
                }
            },
            "translation": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "first_resource_only": {"type": "boolean"}
                }
            },
            "output": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "output_directory": NULLABLE_STRING,
                    "skip_audit_report": {"type": "boolean"}
                }
            },
            "logging": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
                    },
                    "format": {"type": "string"},
                    "file": NULLABLE_STRING,
                    "console": {"type": "boolean"},
                    "max_file_size": {"type": "integer", "minimum": 1024},
                    "backup_count": {"type": "integer", "minimum": 1}
                }
            }
        }
    }

    def __init__(self):
        self.config = ToolConfig()
        self._config_sources: List[str] = []

    def load_config(self,
                    config_file: Optional[str] = None,
                    cli_args: Optional[Dict[str, Any]] = None,
                    env_vars: bool = True) -> ToolConfig:
        """
        Load configuration from multiple sources with precedence:
        1. CLI arguments (highest priority)
        2. Environment variables
        3. Configuration file
        4. Default values (lowest priority)
        """
        logger.info("Loading configuration")

        self.config = ToolConfig()
        self._config_sources = ["defaults"]

        if config_file:
            self._load_from_file(config_file)
        else:
            for location in DEFAULT_CONFIG_LOCATIONS:
                expanded_path = os.path.expanduser(location)
                if os.path.exists(expanded_path):
                    self._load_from_file(expanded_path)
                    break

        if env_vars:
            self._load_from_env()

        if cli_args:
            self._apply_cli_args(cli_args)

        self._validate_config()

        logger.info(f"Configuration loaded from sources: {', '.join(self._config_sources)}")
        return self.config

    def _load_from_file(self, config_file: str):
        """Load configuration from YAML or JSON file"""
        config_path = Path(config_file).expanduser()
        if not config_path.exists():
            logger.warning(f"Configuration file not found: {config_file}")
            return

        try:
            with open(config_path, 'r') as f:
                if config_path.suffix.lower() in ['.yaml', '.yml']:
                    file_config = yaml.safe_load(f)
                elif config_path.suffix.lower() == '.json':
                    file_config = json.load(f)
                else:
                    logger.warning(f"Unsupported configuration file format: {config_path.suffix}")
                    return
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load configuration from {config_file}: {str(e)}")
            raise

        if file_config:
            if not isinstance(file_config, dict):
                raise ValueError(f"Invalid configuration: {config_file} must contain a mapping")
            self._merge_config(file_config)
            self._config_sources.append(f"file:{config_file}")
            logger.info(f"Loaded configuration from {config_file}")

    def _load_from_env(self):
        """Load configuration from KAFKA_ACL_* environment variables"""
        env_config: Dict[str, Dict[str, Any]] = {}

        for suffix, (section, key, parse) in ENV_VARIABLES.items():
            value = os.getenv(f"{ENV_PREFIX}{suffix}")
            if value:
                env_config.setdefault(section, {})[key] = parse(value)

        if env_config:
            self._merge_config(env_config)
            self._config_sources.append("environment")
            logger.debug("Loaded configuration from environment variables")

    def _apply_cli_args(self, cli_args: Dict[str, Any]):
        """Apply CLI arguments to configuration"""
        cli_config: Dict[str, Dict[str, Any]] = {}

        for name, (section, key) in CLI_ARGUMENTS.items():
            if cli_args.get(name):
                cli_config.setdefault(section, {})[key] = cli_args[name]

        for name, (section, key) in CLI_FLAGS.items():
            if cli_args.get(name):
                cli_config.setdefault(section, {})[key] = True

        if cli_args.get('verbose'):
            cli_config.setdefault('logging', {})['level'] = 'DEBUG'
        elif cli_args.get('quiet'):
            cli_config.setdefault('logging', {})['level'] = 'WARNING'

        if cli_config:
            self._merge_config(cli_config)
            self._config_sources.append("cli_args")
            logger.debug("Applied CLI arguments to configuration")

    def _merge_config(self, new_config: Dict[str, Any]):
        """Merge new configuration into existing configuration"""
        def merge_dict(base: Dict, update: Dict):
            for key, value in update.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    merge_dict(base[key], value)
                else:
                    base[key] = value

        config_dict = self._config_to_dict()
        merge_dict(config_dict, new_config)

        # Unknown keys would not fit the dataclasses
        self._validate_dict(config_dict)
        self.config = self._dict_to_config(config_dict)

    def _config_to_dict(self) -> Dict[str, Any]:
        """Convert configuration dataclass to dictionary"""
        return asdict(self.config)

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> ToolConfig:
        """Convert dictionary to configuration dataclass"""
        return ToolConfig(
            source=SourceConfig(**config_dict.get('source', {})),
            target=TargetConfig(**config_dict.get('target', {})),
            translation=TranslationConfig(**config_dict.get('translation', {})),
            output=OutputConfig(**config_dict.get('output', {})),
            logging=LoggingConfig(**config_dict.get('logging', {}))
        )

    def _validate_config(self):
        """Validate configuration against schema"""
        self._validate_dict(self._config_to_dict())
        logger.debug("Configuration validation passed")

    def _validate_dict(self, config_dict: Dict[str, Any]):
        try:
            validate(instance=config_dict, schema=self.CONFIG_SCHEMA)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e.message}")
            raise ValueError(f"Invalid configuration: {e.message}") from e

    def save_config(self, output_file: str, format: str = 'yaml'):
        """Save current configuration to file"""
        if format.lower() not in ('yaml', 'json'):
            raise ValueError(f"Unsupported format: {format}")

        config_dict = self._config_to_dict()

        with open(output_file, 'w') as f:
            if format.lower() == 'yaml':
                yaml.dump(config_dict, f, default_flow_style=False, indent=2)
            else:
                json.dump(config_dict, f, indent=2)

        logger.info(f"Configuration saved to {output_file}")

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of current configuration"""
        source = self.config.source
        return {
            'sources': self._config_sources,
            'principal_source': source.role_arn or source.user_arn or source.state_file,
            'cluster_arn': source.cluster_arn,
            'target_cluster_id': self.config.target.cluster_id,
            'output_directory': self.config.output.output_directory or '(derived)',
            'first_resource_only': self.config.translation.first_resource_only,
            'logging_level': self.config.logging.level
        }


# Default configuration template
DEFAULT_CONFIG_TEMPLATE = """
# Kafka ACL Migrator Configuration

source:
  role_arn: null  # IAM role whose policies are migrated
  user_arn: null  # IAM user whose policies are migrated
  state_file: null  # Discovery state file (client discovery or Kafka ACLs)
  cluster_arn: null  # MSK cluster to read from the state file
  profile: null  # AWS profile to use
  region: null

target:
  cluster_id: null  # Confluent Cloud cluster ID, e.g. lkc-abc123
  rest_endpoint: null  # e.g. https://pkc-abc123.us-east-1.aws.confluent.cloud:443
  provider_version: "~> 2.5"

translation:
  first_resource_only: false  # Only translate the first resource of each action

output:
  output_directory: null  # Derived from the principal or cluster when null
  skip_audit_report: false

logging:
  level: INFO  # DEBUG, INFO, WARNING, ERROR, CRITICAL
  format: "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
  file: null  # Log file path (null for no file logging)
  console: true
  max_file_size: 10485760  # 10MB
  backup_count: 5
"""
