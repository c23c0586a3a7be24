#!/usr/bin/env python3
"""
Setup script for flac2aac.
"""

from setuptools import setup, find_packages
import os

# Read the contents of your README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name="flac2aac",
    version="1.1.0",
    author="flac2aac Project",
    description="Mirror a FLAC library as AAC (.m4a) files with tags and cover art",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Sound/Audio :: Conversion",
    ],
    python_requires=">=3.8",
    install_requires=[
        # FFmpeg itself is an external tool and must be on PATH
        "tqdm>=4.60.0",    # Progress bars
        "psutil>=5.8.0",   # Removable device discovery
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=2.10.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "flac2aac=flac2aac.cli:main",
        ],
    },
    keywords="flac aac m4a audio conversion ffmpeg cover-art",
)
