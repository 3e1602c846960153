"""
Setup script for the grantly capability request engine.
"""

from setuptools import setup, find_packages

setup(
    name="grantly",
    version="0.1.0",
    description="Capability request orchestration with scoped settings routing and isolation",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="Grantly Team",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pydantic>=2.0.0",
        "python-dotenv>=1.0.0",
        "pyyaml>=6.0.0",
        "rich>=13.0.0",
        "InquirerPy>=0.3.4",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "grantly=grantly.main:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
