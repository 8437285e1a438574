"""GitHub issue to Tududi task sync service"""

__version__ = "1.0.0"
