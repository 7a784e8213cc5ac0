"""
HAL 9001 Setup Configuration

Makes HAL installable as a Python package and provides the 'hal'
console script.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_file.exists():
    requirements = [
        line.strip()
        for line in requirements_file.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="hal9001",
    version="1.0.0",
    description="HAL 9001 IRC bot with concurrent message handlers and prefix commands",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="MIT",

    # Package discovery
    packages=find_packages(include=["src", "src.*"]),

    # Dependencies
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "hypothesis>=6.0",
        ],
    },

    # Python version requirement
    python_requires=">=3.10",

    # Entry points
    entry_points={
        "console_scripts": [
            "hal=src.main:run",
        ],
    },

    # Classifiers
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Communications :: Chat :: Internet Relay Chat",
    ],

    # Keywords
    keywords="irc bot chat asyncio",
)
