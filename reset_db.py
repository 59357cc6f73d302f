from bookshelf.database import engine, SessionLocal
from bookshelf.models import Base
from bookshelf.seeders import seed_categories

print("WARNING: This will delete all users, books, notes and categories.")
print("Dropping all tables...")

Base.metadata.drop_all(bind=engine)

print("Creating new tables...")

Base.metadata.create_all(bind=engine)

with SessionLocal() as db:
    added = seed_categories(db)

print(f"Database is fresh and ready ({added} categories seeded).")
