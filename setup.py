"""Setup configuration for scenario-engine tool."""

from setuptools import setup, find_packages

setup(
    name="scenario-engine",
    version="0.1.0",
    description="Scenario model engine for YAML test scenario projects",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pyyaml>=6.0",
        "click>=8.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "scenario-engine=scenario_engine.cli:main",
        ],
    },
)
