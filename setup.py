# setup.py
from pathlib import Path
from setuptools import setup, find_packages

README = Path(__file__).with_name("README.md").read_text(encoding="utf-8")

setup(
    name="vstm-gaze",
    version="0.1.0",
    description="Missing-object visual short-term memory task with tick-level gaze, fixation and AOI sequence logging",
    long_description=README,
    long_description_content_type="text/markdown",
    license="MIT",
    packages=find_packages(exclude=("tests", "tests.*", "examples", "sessions")),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.21",
        "pandas>=1.4",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": ["vstm-gaze=vstm_gaze.cli:main"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
