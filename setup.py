"""
Setup script for hbtad (Host-Based Traffic Anomaly Detection).
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="hbtad",
    version="0.1.0",
    description="Packet feature histograms and centroid clustering for traffic profiling",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="hbtad developers",
    packages=find_packages(where="src", exclude=["*.tests", "*.tests.*"]),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.21.0",
        "pandas>=1.3.0",
        "scikit-learn>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
        ],
    },
)
