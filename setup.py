#!/usr/bin/env python3
"""
Setup script for mailview.

Install with `pip install .` or, for development, `pip install -e '.[dev]'`.
"""

import sys

if sys.version_info < (3, 11):
    sys.exit("Error: mailview requires Python 3.11 or higher.")

try:
    from setuptools import find_packages, setup
except ImportError:
    sys.exit("Error: setuptools is required. Install it with: pip install setuptools")

# Try to read version from __version__.py for consistency
try:
    import re
    from pathlib import Path

    version_file = Path(__file__).parent / "src" / "mailview" / "__version__.py"
    version_content = version_file.read_text(encoding="utf-8")
    version_match = re.search(r'^__version__\s*=\s*["\']([^"\']+)["\']', version_content, re.M)
    version = version_match.group(1) if version_match else "0.1.0"
except OSError:
    version = "0.1.0"

# Read long description from README if available
try:
    from pathlib import Path

    readme_path = Path(__file__).parent / "README.md"
    if readme_path.exists():
        long_description = readme_path.read_text(encoding="utf-8")
        long_description_content_type = "text/markdown"
    else:
        long_description = "Message text view with clickable links and link spoofing checks"
        long_description_content_type = "text/plain"
except OSError:
    long_description = "Message text view with clickable links and link spoofing checks"
    long_description_content_type = "text/plain"

# Core dependencies (the headless renderer and CLI)
install_requires = [
    "pydantic>=2.5.0",
    "pydantic-settings>=2.7.0",
]

# Development dependencies
extras_require = {
    "dev": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "black>=23.0.0",
        "flake8>=6.1.0",
        "mypy>=1.7.0",
    ],
}
extras_require["test"] = ["pytest>=7.4.0", "pytest-cov>=4.1.0"]

# GTK 4 viewer; needs the GTK 4 and libadwaita introspection data
extras_require["gui"] = ["PyGObject>=3.46.0"]

setup(
    name="mailview",
    version=version,
    description="Message text view with clickable links and link spoofing checks",
    long_description=long_description,
    long_description_content_type=long_description_content_type,
    author="mailview developers",
    license="MIT",
    python_requires=">=3.11",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "mailview=mailview.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Communications :: Email",
    ],
    keywords=["email", "viewer", "links", "phishing", "gtk"],
)
