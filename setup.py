"""Setup configuration for the Chat Room Registry."""

from setuptools import setup, find_packages

setup(
    name="chat-room-registry",
    version="0.1.0",
    description="An in-process chat room registry with pluggable transports",
    author="DS-G1-SMS Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "websockets>=12.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "chat-room=chatroom.main:main",
            "chat-room-server=chatroom.main:serve_main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
