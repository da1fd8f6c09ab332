"""
Handlers Package

Intent classification and canned conversation wording.
"""

from services.ai.handlers.intent_classifier import IntentClassifier
from services.ai.handlers.greeting_handler import GreetingHandler

__all__ = [
    'IntentClassifier',
    'GreetingHandler',
]
