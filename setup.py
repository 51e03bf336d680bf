#!/usr/bin/env python3
"""
wacore - Setup Script

For development installation:
    pip install -e ".[dev,toml]"
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read version from package
version = "0.1.0"

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="wacore",
    version=version,
    description="WhatsApp Web wire-protocol client core",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="wacore contributors",
    license="MIT",

    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",

    install_requires=[
        "cryptography>=3.4",
        "websocket-client>=1.6",
        "requests>=2.28",
    ],

    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=3.0",
            "black>=22.0",
            "mypy>=0.9",
        ],
        "toml": [
            "toml>=0.10",
        ],
    },

    entry_points={
        "console_scripts": [
            "wacore=wacore.main:main",
        ],
    },

    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Communications :: Chat",
        "Topic :: Internet",
        "Topic :: Security :: Cryptography",
    ],

    keywords="whatsapp websocket protocol binary-codec x25519 messaging",
)
