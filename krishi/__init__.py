"""
Krishi - bilingual (English/Hindi) push-to-talk voice assistant for
gardening and farming questions.
"""

__version__ = "1.0.0"
