"""
Maintenance toolkit for the campus rides document store.

This package holds the offline repair and verification procedures that
operators run against the MongoDB database backing the ride billing
service, plus a small FastAPI surface for health checks.
"""
