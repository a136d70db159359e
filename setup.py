"""Setup script for the Gemini Quota Bot."""

from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

with open("README.md", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="gemini-quota-bot",
    version="1.0.0",
    description="A Telegram bot for Google Gemini with a per-user daily token quota",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["gembot", "gembot.*"]),
    py_modules=["main"],
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.24",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "gembot=main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
