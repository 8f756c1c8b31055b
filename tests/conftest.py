"""
Shared fixtures for the sqlalchemy-seedfile test suite.
"""

import textwrap
from pathlib import Path

import pytest
from sqlalchemy import Column, Integer, String, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from sqlalchemy_seedfile import ModelRegistry, get_environment, set_environment

Base = declarative_base()


class Widget(Base):
    __tablename__ = "widgets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    color = Column(String(50), nullable=True)

    def validate(self):
        return bool(self.name)


class Currency(Base):
    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    abbr = Column(String(3), nullable=False)
    name = Column(String(255), nullable=False)


@pytest.fixture(autouse=True)
def environment():
    previous = get_environment()
    set_environment("test")
    yield "test"
    set_environment(previous)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    session = sessionmaker(bind=engine)()
    yield session
    session.close()


@pytest.fixture
def models():
    return ModelRegistry.from_base(Base)


@pytest.fixture
def seeds_dir(tmp_path) -> Path:
    directory = tmp_path / "seeds"
    directory.mkdir()
    return directory


@pytest.fixture
def write_seed(seeds_dir):
    def _write(filename: str, content: str) -> Path:
        path = seeds_dir / filename
        path.write_text(textwrap.dedent(content).lstrip())
        return path

    return _write


def code_seed(widget_name: str, *environments: str, fail: bool = False) -> str:
    """Source of a code seed inserting one widget."""
    args = ", ".join(repr(env) for env in environments)
    lines = [
        "from sqlalchemy import text",
        "from sqlalchemy_seedfile import seed",
        "",
        "",
        f"@seed({args})",
        "def add_widget(session):",
        f"    session.execute(text(\"INSERT INTO widgets (name) VALUES ('{widget_name}')\"))",
    ]
    if fail:
        lines.append("    raise RuntimeError('seed failed')")
    return "\n".join(lines) + "\n"


def widget_names(session):
    return session.execute(select(Widget.name).order_by(Widget.id)).scalars().all()
