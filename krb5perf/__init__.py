"""
krb5perf: performance benchmarking and stress testing of authentication
primitives (Kerberos v5 AS_REQ against a KDC, or HTTP Basic endpoints).
"""

__version__ = "0.1"
