"""
Setup script for the EC2 Monitoring CDK Application.

Packages the CDK stack together with the Lambda function code that installs
the CloudWatch agent on new EC2 instances and manages their alarms.
"""

import pathlib
from setuptools import setup, find_packages

HERE = pathlib.Path(__file__).parent
README = (HERE / "README.md").read_text(encoding="utf-8") if (HERE / "README.md").exists() else ""

# Read requirements from requirements.txt
with open(HERE / "requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="ec2-monitoring-automation",
    version="1.0.0",
    description="AWS CDK Python application that keeps CloudWatch alarms in step with EC2 instances",
    long_description=README,
    long_description_content_type="text/markdown",
    author="AWS CDK Team",
    author_email="aws-cdk-dev@amazon.com",
    packages=find_packages(where="lambda") + ["stacks"],
    package_dir={"": "lambda", "stacks": "stacks"},
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "boto3-stubs[cloudwatch,ec2,ssm]>=1.28.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-mock>=3.10.0",
            "moto[cloudwatch,ec2,ssm]>=5.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Monitoring",
        "Topic :: System :: Systems Administration",
        "Typing :: Typed",
    ],
    keywords=[
        "aws",
        "cdk",
        "ec2",
        "cloudwatch",
        "cloudwatch-agent",
        "alarms",
        "ssm",
        "eventbridge",
        "monitoring",
    ],
    license="Apache-2.0",
    zip_safe=False,
)
