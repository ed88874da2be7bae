"""
Main entry point for the bulkdata_crawler package.

Allows running the crawler as: python -m bulkdata_crawler
"""

from bulkdata_crawler.cli import main

if __name__ == "__main__":
    main()
