"""Insights package: advisory messages derived from analytics."""

from src.insights.rules import generate_insights

__all__ = ["generate_insights"]
