#!/usr/bin/env python3
"""
Setup script for the Firebase scanner package.
"""
from setuptools import setup

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="firebase-scanner",
    version="1.0.0",
    author="Firebase Scanner Contributors",
    author_email="",
    description="Concurrent scanner for sites loading JavaScript bundles with Firebase configuration",
    long_description=long_description,
    long_description_content_type="text/markdown",
    py_modules=["cli", "fetchers", "firebase_scanner"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Security",
        "Topic :: Internet :: WWW/HTTP",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "firebase-scanner=cli:main",
        ],
    },
    keywords="firebase scanner security async http playwright",
)
