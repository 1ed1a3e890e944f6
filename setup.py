"""
Setup script for signal-drill.

Signal Drill is the spaced-repetition engine behind a railway signal and
operations exam trainer. It serves three roles:

1. Scheduling Core - Leitner boxes (optional SM-2 ease factor), XP and streaks
2. Study API - FastAPI service for session loading and answer submission
3. Terminal Trainer - Offline study sessions from the command line

The 'signal-drill' command is the CLI entry point; 'signal-drill-api'
starts the HTTP service.
"""

from setuptools import find_packages, setup

setup(
    name="signal-drill",
    version="0.1.0",
    description="Spaced-repetition scheduling for railway signal exam preparation",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config", "main"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "httpx>=0.25.0",
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "signal-drill=src.cli.study_cli:run",
            "signal-drill-api=main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition leitner railway signals education",
)
