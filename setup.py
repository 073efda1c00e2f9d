"""
Setup script for PyHeaderBlock
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8') if (this_directory / "README.md").exists() else ""

# Read requirements from requirements.txt
def parse_requirements(filename):
    """Parse requirements from requirements.txt file"""
    try:
        with open(this_directory / filename, 'r') as f:
            requirements = []
            for line in f:
                line = line.strip()
                # Skip comments and empty lines
                if line and not line.startswith('#'):
                    # Remove inline comments
                    if '#' in line:
                        line = line.split('#')[0].strip()
                    requirements.append(line)
            return requirements
    except FileNotFoundError:
        return []

requirements = parse_requirements('requirements.txt')

# Split off development dependencies
dev_keywords = ['pytest']
install_requires = [
    req for req in requirements
    if not any(keyword in req.lower() for keyword in dev_keywords)
]
dev_requires = [req for req in requirements if req not in install_requires]

setup(
    name="pyheaderblock",
    version="1.0.0",
    description="Block HTTP requests by header name/value rules and client IP allowlist",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
        "Topic :: Internet :: Proxy Servers",
        "Topic :: Security",
    ],
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require={
        "dev": dev_requires,
        "test": dev_requires,
    },
    entry_points={
        "console_scripts": [
            "pyheaderblock=pyheaderblock.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "waf",
        "middleware",
        "asgi",
        "header filtering",
        "ip allowlist",
        "security",
    ],
)
