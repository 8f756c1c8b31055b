"""
Basic example of using sqlalchemy-seedfile.

Applies the seed files in ``examples/seeds`` to an in-memory SQLite
database, then applies them again to show that nothing runs twice.
"""

import logging
from pathlib import Path

from sqlalchemy import Column, Integer, String, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from sqlalchemy_seedfile import ModelRegistry, Seeder, set_environment

logging.basicConfig(level=logging.INFO)

Base = declarative_base()

SEEDS_PATH = Path(__file__).parent / "seeds"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(50), nullable=False, unique=True)
    full_name = Column(String(255))


class Currency(Base):
    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True)
    abbr = Column(String(3), nullable=False, unique=True)
    name = Column(String(255), nullable=False)


def main():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()

    set_environment("development")
    models = ModelRegistry.from_base(Base)

    first = Seeder.apply(session, SEEDS_PATH, models=models)
    print(f"First run applied: {first.applied} (skipped: {first.skipped})")

    second = Seeder.apply(session, SEEDS_PATH, models=models)
    print(f"Second run applied: {second.applied}")

    print("Users:", session.execute(select(User.username)).scalars().all())
    print("Currencies:", session.execute(select(Currency.abbr)).scalars().all())

    session.close()


if __name__ == "__main__":
    main()
