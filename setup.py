"""Setup configuration for keywordguard."""

from setuptools import setup, find_packages

setup(
    name="keywordguard",
    version="0.1.0",
    description="Keyword-based group chat moderation with mute escalation",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "keywordguard=keywordguard.main:main",
        ],
    },
)
