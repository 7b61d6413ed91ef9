"""Models layer - SQLAlchemy ORM models.

Models define the database schema.
All models inherit from the Base class defined in core.database.
"""

from competitive_analysis.core.database import Base
from competitive_analysis.models.competitive_analysis import CompetitiveAnalysis
from competitive_analysis.models.competitor import Competitor
from competitive_analysis.models.content_page import ContentPage

__all__ = [
    "Base",
    "CompetitiveAnalysis",
    "Competitor",
    "ContentPage",
]
