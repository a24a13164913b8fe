"""
spectap

Mock HTTP servers generated from OpenAPI specifications, plus a recording
proxy and a deterministic replay server for live API traffic.
"""

__version__ = '1.0.0'
