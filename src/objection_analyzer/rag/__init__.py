"""
Retrieval-augmented analysis steps.

- extractor.py: transcript -> objections
- classifier.py: objection -> catalog classification
"""

from objection_analyzer.rag.classifier import RagClassifier
from objection_analyzer.rag.extractor import ObjectionExtractor

__all__ = ["ObjectionExtractor", "RagClassifier"]
