__version__ = "0.3.0"

__release_notes__ = """
Admin upload path for exam papers: authenticated PDF upload with on-demand
bucket provisioning, bounded object-write retry and explicit partial-failure
reporting.
"""
