#!/usr/bin/env python3
"""
KeyLocker Setup Configuration
"""

from setuptools import setup, find_packages

setup(
    name="keylocker",
    version="1.0.0",
    description="Encrypted API key storage behind a single master password",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0",
        "tabulate>=0.9.0",
        "cryptography>=41.0.0",
        "argon2-cffi>=21.3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "keylocker=keylocker.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Topic :: Security :: Cryptography",
        "Environment :: Console",
    ],
)
