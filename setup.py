#!/usr/bin/env python3
"""
Kafka ACL Migrator
Converts AWS MSK IAM policies and Kafka ACLs into Confluent Cloud ACL
Terraform configuration with a markdown audit report.
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="kafka-acl-migrator",
    version="1.0.0",
    description="Convert AWS MSK IAM policies and Kafka ACLs into Confluent Cloud ACL Terraform",
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: System :: Systems Administration",
        "Topic :: Software Development :: Code Generators",
        "Topic :: Utilities",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "kafka-acl-migrate=kafka_acl_migrator.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
