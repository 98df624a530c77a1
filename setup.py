"""Setup configuration for xcode_cloud_mcp package."""

from setuptools import setup, find_packages

setup(
    name="xcode_cloud_mcp",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        "mcp>=1.9.0,<2",
        "httpx>=0.27.0",
        "PyJWT[crypto]>=2.8.0",
        "python-dotenv>=1.0.0",
        "opentelemetry-api>=1.20.0",
        "typing-extensions>=4.6",
    ],
    extras_require={
        "otel": [
            "opentelemetry-sdk>=1.20.0",
            "opentelemetry-exporter-otlp>=1.20.0",
        ],
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "pytest-mock>=3.12",
            "cryptography>=41.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "xcode-cloud-mcp=xcode_cloud_mcp.server:main",
        ],
    },
)
