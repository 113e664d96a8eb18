"""
uds_comm — Unix-Domain Socket Communication Library

Minimal path-addressed IPC endpoints over Unix-domain stream, datagram
and sequenced-packet sockets.
"""

from setuptools import setup, find_packages
from pathlib import Path

long_description = (Path(__file__).parent / "README.md").read_text(encoding="utf-8")

setup(
    name="uds-comm",
    version="1.0.0",
    author="RAFT Robotics",
    description=(
        "Path-addressed IPC endpoints over Unix-domain sockets with "
        "signal-safe blocking I/O."
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*", "examples*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.21",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-timeout",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Intended Audience :: Developers",
        "Topic :: System :: Networking",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
)
