"""
Adapters - concrete implementations of the core ports.

- parsers: YAML codec for metadata records
- github: GitHub REST client and GitHubPort adapter
- feed: published metadata snapshot over HTTP, with caching
- cache: TTL cache backends
- store: SQLAlchemy persistence
- config: configuration providers
- upload: object-storage upload of archive files
"""
