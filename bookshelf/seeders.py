import logging

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Fiction", "description": "Fictional stories and novels", "color": "#6366f1"},
    {"name": "Non-Fiction", "description": "Factual books and biographies", "color": "#8b5cf6"},
    {"name": "Science", "description": "Scientific and technical books", "color": "#3b82f6"},
    {"name": "Technology", "description": "Programming, IT, and technology", "color": "#06b6d4"},
    {"name": "History", "description": "Historical accounts and research", "color": "#f59e0b"},
    {"name": "Philosophy", "description": "Philosophical texts and thoughts", "color": "#ec4899"},
    {"name": "Self-Help", "description": "Personal development and improvement", "color": "#10b981"},
    {"name": "Business", "description": "Business and entrepreneurship", "color": "#f97316"},
    {"name": "Fantasy", "description": "Fantasy and magical stories", "color": "#a855f7"},
    {"name": "Mystery", "description": "Mystery and thriller books", "color": "#ef4444"},
]

def seed_categories(db: Session) -> int:
    """Insert the default categories that are not there yet. Returns how many were added."""
    existing = {name for (name,) in db.query(models.Category.name).all()}
    added = 0
    for category in CATEGORIES:
        if category["name"] in existing:
            continue
        db.add(models.Category(**category))
        added += 1
    db.commit()
    logger.info(f"Seeded {added} categories")
    return added
