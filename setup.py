"""
Setup script for the jobtrack AI layer.

Allows development installation with `pip install -e .`
Test dependencies: `pip install -e ".[test]"`
"""

from setuptools import setup, find_packages

setup(
    name="jobtrack-ai",
    version="0.1.0",
    packages=find_packages(include=["jobtrack", "jobtrack.*"]),
    python_requires=">=3.11",
    install_requires=[
        "httpx>=0.27",
        "json-repair>=0.30",
        "pydantic>=2.0",
        "python-dotenv>=1.0",
        "tenacity>=8.2",
    ],
    entry_points={
        "console_scripts": [
            "jobtrack-ai=jobtrack.cli:main",
        ],
    },
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "pytest-mock>=3.12",
        ],
    },
)
