"""
Person Registry: Record Store and Resource Cache

A small record-management service built with Python asyncio. The server
keeps person records in a lock-guarded, durably persisted store; the client
memoizes fetches per identity and drops them when a write lands.
"""

__version__ = "1.0.0"
