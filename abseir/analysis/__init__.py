from .summary import summarize_posterior

__all__ = ["summarize_posterior"]
