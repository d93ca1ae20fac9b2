"""
Call Objection Analyzer.

Extracts customer objections from call-center transcripts, classifies them
against a two-level category catalog with retrieval-augmented judgment, and
validates whether the agent answered and resolved each one.
"""

__version__ = "0.1.0"
