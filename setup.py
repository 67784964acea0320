#!/usr/bin/env python3
"""
Krishi Voice Assistant
Setup script for pip installation
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme = Path(__file__).parent / "README.md"
long_description = readme.read_text() if readme.exists() else ""

setup(
    name="krishi",
    version="1.0.0",
    description="Bilingual push-to-talk voice assistant for gardening questions",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
    ],
    python_requires=">=3.10",
    install_requires=[
        "sounddevice>=0.4.6",
        "numpy>=1.24.0",
        "faster-whisper>=0.10.0",
        "aiohttp>=3.9.0",
        "edge-tts>=6.1.0",
        "pynput>=1.7.6",
        "tomli>=2.0.0; python_version < '3.11'",
    ],
    extras_require={
        "dev": ["pytest", "black", "mypy"],
    },
    entry_points={
        "console_scripts": [
            "krishi=krishi.__main__:main",
            "krishi-console=krishi.console:main",
        ],
    },
)
