"""
byrpublish - stage, review and publish BYR Docs archive metadata.

Contributors describe archive files (books, exam papers, study material) as
YAML metadata records, stage edits against the published snapshot, and
publish everything as one pull request to the canonical archive.
"""

__version__ = "0.3.0"
