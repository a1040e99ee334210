"""
Core domain: records, execution state, errors, transformers and configuration.
"""
