#!/usr/bin/env python3
"""Setup script for ddp_linreg package."""

from setuptools import setup, find_packages

setup(
    name="ddp-linreg",
    version="0.1.0",
    description="Distributed linear regression over PyTorch process groups with Kafka and Spark data sources",
    author="DDP_LINREG Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "torch>=2.4.0",
        "pyspark>=3.5.1",
        "numpy>=1.26.4",
        "pandas>=2.2.2",
        "scikit-learn>=1.4.2",
        "tqdm>=4.66.1",
        "kafka-python>=2.0.2",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0.0",
            "black>=21.0.0",
            "flake8>=3.8.0",
            "mypy>=0.800",
        ],
    },
    entry_points={
        "console_scripts": [
            "ddp-linreg=ddp_linreg.main:main",
            "ddp_linreg=ddp_linreg.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
