"""
Source Adapters Package

This package contains individual market-data provider modules.
Each provider has its own subfolder with:
- api_client.py: REST API logic and normalization to TokenRecord
- __init__.py: Source adapter class implementing SourceAdapter

Shared HTTP retry logic lives in sources/http.py.
"""
