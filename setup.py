"""Setup configuration for RuleKeeper Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="rulekeeper",
    version="0.1.0",
    description="A Discord bot that answers questions about community rule documents",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord",
        "openai",
        "pyyaml",
        "python-dotenv",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "rulekeeper=rulekeeper.main:main",
        ],
    },
)
