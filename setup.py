from pathlib import Path

from setuptools import find_packages, setup

BASE_DIR = Path(__file__).parent
README = (BASE_DIR / "README.md").read_text(encoding="utf-8")

setup(
    name="host-metrics-agent",
    version="0.1.0",
    description="Lightweight agent exposing a JSON snapshot of host metrics over HTTP.",
    long_description=README,
    long_description_content_type="text/markdown",
    author="Monitoring Stack",
    packages=find_packages(include=["metrics_agent", "metrics_agent.*"]),
    python_requires=">=3.9",
    include_package_data=True,
    install_requires=[
        "fastapi>=0.115.0",
        "uvicorn[standard]>=0.32.0",
        "psutil>=5.9.0",
        "pydantic>=2.0",
        "requests>=2.32.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.27.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "host-metrics-agent=metrics_agent.main:main",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
