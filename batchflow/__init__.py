"""
batchflow: chunked read-transform-write batch jobs.
"""

__version__ = "0.1.0"
