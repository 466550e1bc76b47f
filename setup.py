"""
SBPL Print Service - Setup Script
=================================

Install: pip install .
Install dev: pip install -e .[dev]
Install on Windows (spooler transport): pip install .[windows]
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

with open("requirements.txt", "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="sbpl-print-service",
    version="1.0.0",
    author="EGS Software AG",
    author_email="marc@egs.ch",
    description="SBPL label printer driver and print service (TCP, Windows spooler, UDP discovery)",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: Other/Proprietary License",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Printing",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "windows": ["pywin32>=306; sys_platform == 'win32'"],
        "dev": ["pytest", "pytest-cov", "black", "flake8"],
    },
    entry_points={
        "console_scripts": [
            "sbpl-print-service=sbpl_print_service.__main__:main",
        ],
    },
)
