"""
Intent classification service.

Classifies chat utterances into operator-defined intents, answers with one
of the intent's canned responses, and retrains itself whenever the intent
catalog changes in the document store.
"""

__version__ = "0.1.0"
