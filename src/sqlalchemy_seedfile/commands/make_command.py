"""
Make command for creating new seed files.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import yaml

from sqlalchemy_seedfile.utils.environment import normalize_environments

logger = logging.getLogger(__name__)

FORMATS = ("py", "yml", "json")

CODE_TEMPLATE = '''"""
{description}
"""

from sqlalchemy_seedfile import seed


@seed({environments})
def {function_name}(session):
    """{description}"""
    # Example:
    # from myapp.models import Currency
    #
    # session.add_all([
    #     Currency(abbr="USD", name="United States dollar"),
    #     Currency(abbr="BRL", name="Brazilian real"),
    # ])
    pass
'''


def snake_case(name: str) -> str:
    """Convert ``AddDefaultUsers`` or ``add-default users`` to ``add_default_users``."""
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name.strip())
    return re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_").lower()


def render_seed(name: str, file_format: str, environments: List[str]) -> str:
    """
    Render the contents of a new seed file.

    Args:
        name: Seed name
        file_format: One of ``py``, ``yml``, ``json``
        environments: Environments the seed applies to; empty means all

    Returns:
        File contents
    """
    envs = sorted(normalize_environments(environments))
    description = f"Seed {snake_case(name).replace('_', ' ')}."

    if file_format == "py":
        return CODE_TEMPLATE.format(
            description=description,
            environments=", ".join(repr(env) for env in envs),
            function_name=snake_case(name),
        )

    document = {}
    if envs:
        document["environment"] = envs if len(envs) > 1 else envs[0]
    document["model_name"] = {"class": "ModelName", "entries": [{"attribute": "value"}]}

    if file_format == "yml":
        return yaml.safe_dump(document, sort_keys=False)
    if file_format == "json":
        return json.dumps(document, indent=2) + "\n"

    raise ValueError(f"Unsupported seed format: {file_format} (expected one of {', '.join(FORMATS)})")


def create_seed(
    name: str,
    seeds_path: str,
    file_format: str = "py",
    environments: Optional[List[str]] = None,
    timestamp: Optional[datetime] = None,
) -> Path:
    """
    Create a new timestamped seed file.

    Args:
        name: Seed name
        seeds_path: Directory to write into (created if missing)
        file_format: One of ``py``, ``yml``, ``json``
        environments: Environments the seed applies to
        timestamp: Prefix timestamp (defaults to now, UTC)

    Returns:
        Path of the created file
    """
    content = render_seed(name, file_format, environments or [])

    directory = Path(seeds_path)
    directory.mkdir(parents=True, exist_ok=True)

    prefix = (timestamp or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    file_path = directory / f"{prefix}_{snake_case(name)}.{file_format}"
    if file_path.exists():
        raise FileExistsError(f"Seed file already exists: {file_path}")

    file_path.write_text(content)
    logger.info(f"Created seed file: {file_path}")
    return file_path
