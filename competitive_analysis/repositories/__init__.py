"""Repositories layer - Data access and persistence.

Repositories handle all database operations using SQLAlchemy.
They abstract the database implementation from the service layer.
"""

from competitive_analysis.repositories.analysis import CompetitiveAnalysisRepository
from competitive_analysis.repositories.competitor import CompetitorRepository
from competitive_analysis.repositories.content import ContentRepository

__all__ = [
    "CompetitiveAnalysisRepository",
    "CompetitorRepository",
    "ContentRepository",
]
