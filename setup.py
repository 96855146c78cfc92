#!/usr/bin/env python3
"""
Setup script for the DevFlow tool-call analytics package.
Makes the telemetry pipeline pip-installable.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="devflow-analytics",
    version="1.0.0",
    author="DevFlow Contributors",
    description="Buffered tool-call telemetry with batched flushes to a local analytics store",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="scripts"),
    package_dir={"": "scripts"},
    py_modules=["analytics_status"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: System :: Monitoring",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "devflow-analytics=analytics_status:main",
        ],
    },
)
