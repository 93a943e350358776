from setuptools import setup, find_packages

setup(
    name="json_assistant",
    version="0.1.0",
    packages=find_packages(include=["json_assistant", "json_assistant.*"]),
    package_data={"json_assistant.services": ["*.yaml"]},
    install_requires=[
        "duckdb",
        "httpx",
        "openai",
        "anthropic",
        "mistralai>=1.0,<2",
        "pydantic>=2",
        "pyyaml",
        "python-dotenv"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio"
        ],
    },
)
