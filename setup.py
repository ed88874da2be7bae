"""Package setup for bulkdata_crawler."""

from setuptools import setup, find_packages

setup(
    name="bulkdata-crawler",
    version="1.0.0",
    description="Recursive mirror of the GPO FDsys bulk-data listing into "
                "per-file tar envelopes",
    packages=find_packages(include=["bulkdata_crawler", "bulkdata_crawler.*"]),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "beautifulsoup4>=4.12.0",
        "lxml>=5.0.0",
        "urllib3>=2.0.0",
        "tqdm>=4.66.0",
        "colorlog>=6.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "bulkdata-crawler=bulkdata_crawler.cli:main",
        ],
    },
)
